"""
Symbol-Versioning Scans
========================

Version definitions (``SHT_GNU_verdef``) become provides and version
requirements (``SHT_GNU_verneed``) become requires.

Both sections hold variable-length records, each pointing to a chain of
auxiliary records through relative offsets.  The walk itself lives in
:class:`~elfdeps.parsers.elf_parser.ELFParser`; these functions only
decide what each record contributes.  A string that cannot be resolved
ends the walk of the current chain, keeping whatever was already emitted.

References:
    - Linux Standard Base Core Specification 5.0, section 10.7.
    - Drepper, U. (2011). How To Write Shared Libraries.
"""

from __future__ import annotations

from typing import Optional

from elfdeps.analyzers.policy import add_decorated, gen_requires
from elfdeps.core.models import ObjectContext, ScanOptions
from elfdeps.parsers.elf_parser import VER_FLG_BASE, ELFParser, SectionHeader


def scan_verdef(
    parser: ELFParser,
    sh: SectionHeader,
    ctx: ObjectContext,
    options: ScanOptions,
) -> None:
    """Add ``soname(VERSION)marker`` provides for every defined version.

    The base definition names the object itself and sets the soname that
    later definitions in the same section are paired with.
    """
    soname: Optional[str] = None

    for vd in parser.version_definitions(sh):
        for aux in parser.definition_aux(sh, vd):
            name = parser.string_at(sh.sh_link, aux.vda_name)
            if name is None:
                break
            if vd.vd_flags & VER_FLG_BASE:
                soname = name
                continue
            if soname is not None and not options.soname_only:
                add_decorated(ctx.provides, ctx, options, soname, name)


def scan_verneed(
    parser: ELFParser,
    sh: SectionHeader,
    ctx: ObjectContext,
    options: ScanOptions,
) -> None:
    """Add ``file(VERSION)marker`` requires for every needed version."""
    for vn in parser.version_needs(sh):
        soname = parser.string_at(sh.sh_link, vn.vn_file)
        if soname is None:
            break

        for aux in parser.need_aux(sh, vn):
            name = parser.string_at(sh.sh_link, aux.vna_name)
            if name is None:
                break
            if gen_requires(ctx) and not options.soname_only:
                add_decorated(ctx.requires, ctx, options, soname, name)
