"""
elfdeps Engine
===============

Orchestrates dependency extraction for one object at a time.

Pipeline per path:
    1. Open the file, stat it, and read its contents
    2. Parse the ELF header (non-ELF files are skipped)
    3. Classify the object; anything but EXEC/DYN contributes nothing
    4. Scan program headers for the interpreter
    5. Dispatch every section to the dynamic, verdef or verneed scanner
    6. Apply post-scan policy (GNU-hash token, soname provide,
       interpreter requirement)

Each path gets a fresh :class:`ObjectContext`; nothing is shared between
paths, so a failure never affects the rest of a batch.
"""

from __future__ import annotations

import os
from typing import Callable, Iterable, Iterator

from shared.logger import ToolLogger

from elfdeps.analyzers.dynamic import scan_dynamic
from elfdeps.analyzers.header import scan_header, scan_program_headers
from elfdeps.analyzers.policy import finalize
from elfdeps.analyzers.versions import scan_verdef, scan_verneed
from elfdeps.core.exceptions import (
    HeaderParseError,
    NotAnObjectError,
    ObjectOpenError,
)
from elfdeps.core.models import (
    DependencyResult,
    ObjectContext,
    ObjectKind,
    ScanOptions,
)
from elfdeps.parsers.elf_parser import (
    SHT_DYNAMIC,
    SHT_GNU_VERDEF,
    SHT_GNU_VERNEED,
    ELFParser,
    SectionHeader,
)

_SectionScanner = Callable[
    [ELFParser, SectionHeader, ObjectContext, ScanOptions], None
]

_SECTION_SCANNERS: dict[int, tuple[str, _SectionScanner]] = {
    SHT_GNU_VERDEF: ("verdef", scan_verdef),
    SHT_GNU_VERNEED: ("verneed", scan_verneed),
    SHT_DYNAMIC: ("dynamic", scan_dynamic),
}


class DependencyEngine:
    """Extracts provides and requires from ELF objects.

    Usage::

        engine = DependencyEngine(ScanOptions(add_arch=True))
        result = engine.process("/usr/lib64/libz.so.1")
        for dep in result.provides:
            print(dep)
    """

    def __init__(
        self,
        options: ScanOptions | None = None,
        logger: ToolLogger | None = None,
    ) -> None:
        """Initialise the engine.

        Args:
            options: Scan switches.  Defaults are used if not provided.
            logger: Logger instance.  A new one is created if not provided.
        """
        self._options: ScanOptions = options or ScanOptions()
        self._logger: ToolLogger = logger or ToolLogger("engine")

    # ------------------------------------------------------------------ #
    #  Entry points
    # ------------------------------------------------------------------ #

    def process(self, path: str) -> DependencyResult:
        """Extract dependencies from one file.

        Never raises for per-file problems: open and header failures are
        logged and reported through ``ok=False`` on the result.
        """
        with self._logger.operation("process", target=path):
            try:
                ctx = self.scan(path)
            except NotAnObjectError as exc:
                self._logger.debug("skipping: %s", exc.message)
                return DependencyResult(path=path)
            except (ObjectOpenError, HeaderParseError) as exc:
                self._logger.error(str(exc))
                return DependencyResult(path=path, ok=False, error=exc.message)

            self._logger.debug(
                "%s: %d provides, %d requires",
                ctx.kind.value, len(ctx.provides), len(ctx.requires),
            )
            return DependencyResult.from_context(ctx)

    def process_many(self, paths: Iterable[str]) -> Iterator[DependencyResult]:
        """Lazily process *paths* in order, one result per path."""
        for path in paths:
            yield self.process(path)

    def scan(self, path: str) -> ObjectContext:
        """Run the full pipeline on *path* and return the populated context.

        Raises:
            ObjectOpenError: The file cannot be opened or stat'ed.
            NotAnObjectError: The file is not an ELF object.
            HeaderParseError: The ELF header is unusable.
        """
        try:
            with open(path, "rb") as fh:
                st_mode = os.fstat(fh.fileno()).st_mode
                data = fh.read()
        except OSError as exc:
            raise ObjectOpenError(path, exc.strerror or str(exc)) from exc

        return self.scan_bytes(data, path, st_mode)

    def scan_bytes(self, data: bytes, path: str, st_mode: int = 0o755) -> ObjectContext:
        """Run the pipeline on an in-memory image as if it lived at *path*.

        *st_mode* stands in for the file mode; only its execute bits matter.
        """
        parser = ELFParser(data, name=path)
        header = parser.parse()

        ctx = ObjectContext(path=path)
        scan_header(header, st_mode, ctx)

        if ctx.kind is not ObjectKind.OTHER:
            scan_program_headers(parser, ctx)
            self._scan_sections(parser, ctx)
        else:
            self._logger.debug("e_type %d carries no dependencies", header.e_type)

        finalize(ctx, self._options)
        return ctx

    # ------------------------------------------------------------------ #
    #  Section dispatch
    # ------------------------------------------------------------------ #

    def _scan_sections(self, parser: ELFParser, ctx: ObjectContext) -> None:
        for sh in parser.sections():
            entry = _SECTION_SCANNERS.get(sh.sh_type)
            if entry is None:
                continue
            name, scanner = entry
            with self._logger.operation(name):
                self._logger.debug("section %d at 0x%x", sh.index, sh.sh_offset)
                scanner(parser, sh, ctx, self._options)
