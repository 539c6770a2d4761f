"""
elfdeps Report Generator
=========================

Writes a structured JSON report covering every processed file, including
both dependency lists regardless of which one was printed.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

from elfdeps import __version__
from elfdeps.core.models import DependencyResult, ScanOptions


class DependencyReportGenerator:
    """Serialise :class:`DependencyResult` batches to JSON."""

    def build(
        self,
        results: Sequence[DependencyResult],
        options: ScanOptions,
    ) -> dict[str, Any]:
        """Return the report as a plain dictionary."""
        return {
            "report_type": "elfdeps",
            "version": __version__,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "options": options.model_dump(mode="json"),
            "failed": sum(1 for r in results if not r.ok),
            "files": [r.model_dump(mode="json") for r in results],
        }

    def generate_json(
        self,
        results: Sequence[DependencyResult],
        options: ScanOptions,
        output_path: str,
    ) -> str:
        """Write the JSON report to *output_path*.

        Returns:
            The absolute path of the generated report.
        """
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        report = self.build(results, options)
        path.write_text(json.dumps(report, indent=2), encoding="utf-8")
        return str(path.resolve())
