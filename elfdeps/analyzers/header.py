"""
Header and Program-Header Scan
===============================

Classifies an object by ``e_type``, derives its markers, and records the
program interpreter from the first usable ``PT_INTERP`` segment.
"""

from __future__ import annotations

import stat

from elfdeps.analyzers.markers import arch_marker, word_size_marker
from elfdeps.core.models import ObjectContext, ObjectKind
from elfdeps.parsers.elf_parser import (
    ELFCLASS64,
    ET_DYN,
    ET_EXEC,
    PT_INTERP,
    ELFHeader,
    ELFParser,
)

_EXEC_BITS: int = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH

_KINDS: dict[int, ObjectKind] = {
    ET_DYN: ObjectKind.SHARED_OBJECT,
    ET_EXEC: ObjectKind.EXECUTABLE,
}


def classify(header: ELFHeader) -> ObjectKind:
    """Map ``e_type`` to an :class:`ObjectKind`; REL, CORE and the rest are ``OTHER``."""
    return _KINDS.get(header.e_type, ObjectKind.OTHER)


def scan_header(header: ELFHeader, st_mode: int, ctx: ObjectContext) -> None:
    """Populate kind, executability, class and markers on *ctx*."""
    ctx.kind = classify(header)
    ctx.is_runtime_executable = bool(st_mode & _EXEC_BITS)
    ctx.bits = 64 if header.ei_class == ELFCLASS64 else 32
    ctx.machine = header.e_machine
    ctx.word_size_marker = word_size_marker(header.ei_class, header.e_machine)
    ctx.arch_marker = arch_marker(header.e_machine, header.ei_class, header.ei_data)


def scan_program_headers(parser: ELFParser, ctx: ObjectContext) -> None:
    """Record the interpreter path from the first in-file ``PT_INTERP``.

    Segments whose offset lies past the end of the file are passed over.
    """
    for ph in parser.program_headers():
        if ph.p_type != PT_INTERP:
            continue
        interp = parser.read_cstring(ph.p_offset)
        if interp is not None:
            ctx.interpreter = interp
            break
