"""
elfdeps Console Output
=======================

Writes the selected dependency list to standard output, one entry per
line, and renders an optional per-file summary on standard error through
:class:`~shared.console.ToolConsole`.
"""

from __future__ import annotations

import os
from typing import BinaryIO, Sequence

import click

from shared.console import ToolConsole

from elfdeps.core.models import DependencyKind, DependencyResult, ObjectKind


class DependencyPrinter:
    """Streams dependency lines for each processed file.

    Usage::

        printer = DependencyPrinter(DependencyKind.PROVIDES)
        for result in engine.process_many(paths):
            printer.emit(result)
    """

    def __init__(
        self,
        which: DependencyKind,
        *,
        stream: BinaryIO | None = None,
        console: ToolConsole | None = None,
    ) -> None:
        self._which = which
        self._stream = stream
        self._console = console or ToolConsole()

    @property
    def which(self) -> DependencyKind:
        return self._which

    def emit(self, result: DependencyResult) -> int:
        """Print the selected list of *result*; returns the number of lines.

        Lines are written as bytes so names read from the object reach the
        output unchanged, whatever their encoding.
        """
        deps = result.dependencies(self._which)
        for dep in deps:
            click.echo(os.fsencode(dep), file=self._stream)
        return len(deps)

    def summary(self, results: Sequence[DependencyResult]) -> None:
        """Render a table of per-file outcomes on standard error."""
        rows = []
        failed = 0
        for r in results:
            if not r.ok:
                failed += 1
                status = f"failed: {r.error}"
            elif r.kind is ObjectKind.OTHER:
                status = "skipped"
            else:
                status = "ok"
            rows.append((
                r.path,
                r.kind.value,
                f"{r.bits}-bit" if r.bits else "-",
                r.soname or "-",
                len(r.provides),
                len(r.requires),
                status,
            ))
        self._console.table(
            f"elfdeps ({self._which.value})",
            ["Path", "Kind", "Class", "Soname", "Provides", "Requires", "Status"],
            rows,
            caption=f"{len(rows)} file(s), {failed} failed",
            styles=["bright_white", "cyan", "dim", "green", "", "", ""],
        )
