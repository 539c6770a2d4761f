"""
Dynamic-Table Scan
===================

Walks a ``SHT_DYNAMIC`` section recording hash-table presence, the
``DT_DEBUG`` PIE heuristic, the soname, and ``DT_NEEDED`` requirements.
Strings are resolved through the section's ``sh_link`` string table.
"""

from __future__ import annotations

from elfdeps.analyzers.policy import add_decorated, gen_requires
from elfdeps.core.models import ObjectContext, ScanOptions
from elfdeps.parsers.elf_parser import (
    DT_DEBUG,
    DT_GNU_HASH,
    DT_HASH,
    DT_NEEDED,
    DT_SONAME,
    ELFParser,
    SectionHeader,
)


def scan_dynamic(
    parser: ELFParser,
    sh: SectionHeader,
    ctx: ObjectContext,
    options: ScanOptions,
) -> None:
    for entry in parser.dynamic_entries(sh):
        tag = entry.d_tag
        if tag == DT_HASH:
            ctx.has_hash = True
        elif tag == DT_GNU_HASH:
            ctx.has_gnu_hash = True
        elif tag == DT_DEBUG:
            ctx.has_debug = True
        elif tag == DT_SONAME:
            soname = parser.string_at(sh.sh_link, entry.d_val)
            if soname is not None:
                ctx.soname = soname
        elif tag == DT_NEEDED and gen_requires(ctx):
            needed = parser.string_at(sh.sh_link, entry.d_val)
            if needed is not None:
                add_decorated(ctx.requires, ctx, options, needed)
