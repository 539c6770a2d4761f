"""
elfdeps CLI -- ELF Dependency Generator
========================================

Click-based command-line interface.  Prints either the provides or the
requires of each given ELF object, one dependency per line, for
consumption by a package build system.

Usage::

    # Provides of a library
    elfdeps --provides /usr/lib64/libz.so.1

    # Requires of everything listed on stdin
    find /usr/bin -type f | elfdeps --requires

    # Add architecture markers and drop the (64bit) pass
    elfdeps -R --add-arch --no-nonarch /usr/bin/ls

Exit status is 0 when every path was processed (non-ELF files count as
processed) and 1 when any path could not be opened or had a broken
header.

References:
    - Click documentation: https://click.palletsprojects.com/
"""

from __future__ import annotations

import os
import sys
from typing import BinaryIO, Iterable, Iterator

import click

from shared.config import ToolkitConfig
from shared.console import ToolConsole
from shared.logger import ToolLogger

from elfdeps import __version__
from elfdeps.core.engine import DependencyEngine
from elfdeps.core.models import DependencyKind, DependencyResult, ScanOptions
from elfdeps.output.console import DependencyPrinter
from elfdeps.output.report import DependencyReportGenerator


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def read_paths(stream: BinaryIO) -> Iterator[str]:
    """Yield one path per line of the binary *stream*, newline stripped, blanks skipped.

    Lines are decoded like command-line arguments, so bytes that are not
    valid in the filesystem encoding survive as surrogate escapes.
    """
    for line in stream:
        raw = line.rstrip(b"\n")
        if raw:
            yield os.fsdecode(raw)


def select_mode(provides: bool, requires: bool) -> DependencyKind:
    """Resolve the output list; exactly one of the two flags must be set."""
    if provides == requires:
        raise click.UsageError("Specify exactly one of --provides or --requires.")
    return DependencyKind.REQUIRES if requires else DependencyKind.PROVIDES


def build_options(
    config: ToolkitConfig,
    *,
    add_arch: bool,
    soname_only: bool,
    no_fake_soname: bool,
    no_filter_soname: bool,
    no_nonarch: bool,
    require_interp: bool,
) -> ScanOptions:
    """Overlay command-line switches on the configured defaults."""
    defaults = config.elfdeps
    return ScanOptions(
        soname_only=defaults.soname_only or soname_only,
        fake_soname=defaults.fake_soname and not no_fake_soname,
        filter_soname=defaults.filter_soname and not no_filter_soname,
        require_interp=defaults.require_interp or require_interp,
        add_arch=defaults.add_arch or add_arch,
        add_word_size=defaults.add_word_size and not no_nonarch,
    )


def _make_logger(name: str, config: ToolkitConfig, verbose: bool) -> ToolLogger:
    gs = config.global_settings
    return ToolLogger(
        name,
        log_level="DEBUG" if verbose or gs.debug else gs.log_level,
        log_file=gs.log_file or None,
        json_logs=gs.log_json,
    )


def _load_config(path: str | None) -> ToolkitConfig:
    # A missing default file yields defaults; unreadable or invalid TOML is reported.
    try:
        return ToolkitConfig.load(path)
    except (OSError, ValueError) as exc:
        raise click.BadParameter(str(exc), param_hint="--config") from exc


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------

@click.command("elfdeps")
@click.argument("files", nargs=-1, type=click.Path())
@click.option("--provides", "-P", is_flag=True, default=False,
              help="Print what the objects provide.")
@click.option("--requires", "-R", is_flag=True, default=False,
              help="Print what the objects require.")
@click.option("--add-arch", is_flag=True, default=False,
              help="Also emit entries decorated with the architecture marker.")
@click.option("--soname-only", is_flag=True, default=False,
              help="Only emit plain soname dependencies, no symbol versions.")
@click.option("--no-fake-soname", is_flag=True, default=False,
              help="Do not derive a soname from the file name.")
@click.option("--no-filter-soname", is_flag=True, default=False,
              help="Accept any non-blank soname.")
@click.option("--no-nonarch", is_flag=True, default=False,
              help="Do not emit entries decorated with the (64bit) marker.")
@click.option("--require-interp", is_flag=True, default=False,
              help="Require the program interpreter (dynamic linker).")
@click.option("--config", "-c", "config_path", type=click.Path(dir_okay=False),
              default=None, help="TOML configuration file.")
@click.option("--report", "report_path", type=click.Path(dir_okay=False),
              default=None, help="Write a JSON report of all processed files.")
@click.option("--summary", is_flag=True, default=False,
              help="Show a per-file summary table on stderr.")
@click.option("--verbose", "-v", is_flag=True, default=False,
              help="Enable debug logging on stderr.")
@click.version_option(__version__, prog_name="elfdeps")
def elfdeps_cli(
    files: tuple[str, ...],
    provides: bool,
    requires: bool,
    add_arch: bool,
    soname_only: bool,
    no_fake_soname: bool,
    no_filter_soname: bool,
    no_nonarch: bool,
    require_interp: bool,
    config_path: str | None,
    report_path: str | None,
    summary: bool,
    verbose: bool,
) -> None:
    """Generate ELF provides or requires for package dependency resolution.

    FILES are ELF objects to inspect.  Without FILES, paths are read from
    standard input, one per line.
    """
    which = select_mode(provides, requires)
    config = _load_config(config_path)
    console = ToolConsole()

    logger = _make_logger("cli", config, verbose)
    engine_logger = logger.child("engine")

    options = build_options(
        config,
        add_arch=add_arch,
        soname_only=soname_only,
        no_fake_soname=no_fake_soname,
        no_filter_soname=no_filter_soname,
        no_nonarch=no_nonarch,
        require_interp=require_interp,
    )
    logger.debug("options: %s", options.model_dump())

    paths: Iterable[str] = files if files else read_paths(click.get_binary_stream("stdin"))

    engine = DependencyEngine(options, logger=engine_logger)
    printer = DependencyPrinter(which, console=console)
    results: list[DependencyResult] = []

    try:
        for result in engine.process_many(paths):
            printer.emit(result)
            results.append(result)
    except KeyboardInterrupt:
        console.warning("Interrupted by user.")
        sys.exit(130)

    if summary:
        printer.summary(results)

    if report_path:
        written = DependencyReportGenerator().generate_json(results, options, report_path)
        logger.info("report written to %s", written)
        console.success(f"Report written to {written}")

    failed = sum(1 for r in results if not r.ok)
    if failed:
        console.warning(f"{failed} of {len(results)} file(s) could not be processed.")
        sys.exit(1)


# ---------------------------------------------------------------------------
# Module entry point
# ---------------------------------------------------------------------------

def main() -> None:
    """Entry point for the ``elfdeps`` console script and ``python -m elfdeps``."""
    elfdeps_cli()


if __name__ == "__main__":
    main()
