"""
Toolkit Console Interface
==========================

Rich-powered console abstraction for user-facing diagnostics.

Dependency lines are written to standard output by the CLI itself; this
console always targets standard error so that its messages never mix
with machine-read output.

References:
    - Rich library: https://github.com/Textualize/rich
"""

from __future__ import annotations

from typing import Any, Sequence

from rich.console import Console
from rich.table import Table
from rich.theme import Theme

_TOOL_THEME = Theme(
    {
        "tool.success": "bold green",
        "tool.warning": "bold yellow",
    }
)


class ToolConsole:
    """Console interface for elfdeps diagnostics.

    Usage::

        con = ToolConsole()
        con.warning("1 of 3 file(s) could not be processed.")
        con.table("Summary", ["Path", "Status"], rows)
    """

    def __init__(self, *, quiet: bool = False, record: bool = False) -> None:
        """Initialise the console.

        Args:
            quiet:  Suppress all output (useful in library / test mode).
            record: Enable Rich recording so output can be exported.
        """
        self._console = Console(
            theme=_TOOL_THEME,
            stderr=True,
            quiet=quiet,
            record=record,
            highlight=False,
        )

    # ------------------------------------------------------------------ #
    #  Message helpers
    # ------------------------------------------------------------------ #

    def success(self, message: str) -> None:
        self._console.print(f"[tool.success]ok:[/tool.success] {message}")

    def warning(self, message: str) -> None:
        self._console.print(f"[tool.warning]warning:[/tool.warning] {message}")

    # ------------------------------------------------------------------ #
    #  Table display
    # ------------------------------------------------------------------ #

    def table(
        self,
        title: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        *,
        caption: str | None = None,
        styles: Sequence[str] | None = None,
    ) -> None:
        """Render a styled Rich table.

        Args:
            title:    Table title.
            columns:  Column header labels.
            rows:     Iterable of row tuples; each element is stringified.
            caption:  Optional footer caption.
            styles:   Optional per-column Rich style strings.
        """
        tbl = Table(
            title=title,
            caption=caption,
            border_style="bright_cyan",
            header_style="bold bright_magenta",
            padding=(0, 1),
        )
        for idx, col_name in enumerate(columns):
            style = styles[idx] if styles and idx < len(styles) else ""
            tbl.add_column(col_name, style=style)

        for row in rows:
            tbl.add_row(*(str(cell) for cell in row))

        self._console.print(tbl)

    def export_text(self) -> str:
        """Export recorded console output as plain text (requires ``record=True``)."""
        return self._console.export_text()
