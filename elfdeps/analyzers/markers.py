"""
Dependency Markers
===================

Bracketed suffixes appended to dependency strings so that packages built
for different ABIs do not satisfy each other.

Two independent markers exist:

    - the word-size marker ``(64bit)``, added for every 64-bit object
      except on Alpha, which has always been 64-bit only and never
      carried the suffix;
    - the architecture marker, derived from machine, class and byte
      order (``(x86_64)``, ``(aarch64_be)``, ``(ppc64le)`` ...).

The architecture tokens are consumed verbatim by package managers, so
the table below is reproduced exactly, including the two historical
entries without parentheses (big-endian ARM and 32-bit PA-RISC).
"""

from __future__ import annotations

from typing import Optional

from elfdeps.parsers.elf_parser import (
    ELFCLASS64,
    ELFDATA2LSB,
    EM_386,
    EM_68K,
    EM_AARCH64,
    EM_ALPHA,
    EM_ARM,
    EM_FAKE_ALPHA,
    EM_IA_64,
    EM_MIPS,
    EM_PARISC,
    EM_PPC,
    EM_PPC64,
    EM_RISCV,
    EM_S390,
    EM_SH,
    EM_SPARC,
    EM_SPARC32PLUS,
    EM_SPARCV9,
    EM_X86_64,
)


WORD_SIZE_MARKER: str = "(64bit)"

# Machines whose 64-bit objects carry no word-size marker.
_NO_WORD_SIZE_MARKER: frozenset[int] = frozenset({EM_ALPHA, EM_FAKE_ALPHA})

# machine -> (32-bit LE, 32-bit BE, 64-bit LE, 64-bit BE)
_ARCH_MARKERS: dict[int, tuple[str, str, str, str]] = {
    EM_386: ("(i386)", "(i386)", "(i386)", "(i386)"),
    EM_68K: ("(m68k)", "(m68k)", "(m68k)", "(m68k)"),
    EM_AARCH64: ("(aarch64)", "(aarch64_be)", "(aarch64)", "(aarch64_be)"),
    EM_ALPHA: ("(alpha)", "(alpha)", "(alpha)", "(alpha)"),
    EM_FAKE_ALPHA: ("(alpha)", "(alpha)", "(alpha)", "(alpha)"),
    EM_ARM: ("(arm)", "armeb", "(arm)", "armeb"),
    EM_IA_64: ("(ia64)", "(ia64)", "(ia64)", "(ia64)"),
    EM_MIPS: ("(mipsel)", "(mips)", "(mips64le)", "(mips64)"),
    EM_PARISC: ("hppa", "hppa", "(hppa64)", "(hppa64)"),
    EM_PPC: ("(ppcle)", "(ppc)", "(ppcle)", "(ppc)"),
    EM_PPC64: ("(ppc64le)", "(ppc64)", "(ppc64le)", "(ppc64)"),
    EM_RISCV: ("(riscv32)", "(riscv32)", "(riscv64)", "(riscv64)"),
    EM_S390: ("(s390)", "(s390)", "(s390x)", "(s390x)"),
    EM_SH: ("(shl)", "(sh)", "(shl)", "(sh)"),
    EM_SPARC: ("(sparc)", "(sparc)", "(sparc64)", "(sparc64)"),
    EM_SPARC32PLUS: ("(sparc)", "(sparc)", "(sparc64)", "(sparc64)"),
    EM_SPARCV9: ("(sparc)", "(sparc)", "(sparc64)", "(sparc64)"),
    EM_X86_64: ("(x86_64)", "(x86_64)", "(x86_64)", "(x86_64)"),
}

_UNKNOWN_MARKERS: tuple[str, str, str, str] = (
    "(unknown)", "(unknown)", "(unknown64)", "(unknown64)",
)


def word_size_marker(ei_class: int, machine: int) -> Optional[str]:
    """Return ``"(64bit)"`` for 64-bit objects, ``None`` otherwise.

    >>> word_size_marker(ELFCLASS64, EM_X86_64)
    '(64bit)'
    >>> word_size_marker(ELFCLASS64, EM_ALPHA) is None
    True
    """
    if ei_class != ELFCLASS64 or machine in _NO_WORD_SIZE_MARKER:
        return None
    return WORD_SIZE_MARKER


def arch_marker(machine: int, ei_class: int, ei_data: int) -> str:
    """Return the architecture token for *machine* in the given class and byte order.

    >>> arch_marker(EM_AARCH64, ELFCLASS64, 2)
    '(aarch64_be)'
    """
    is64 = ei_class == ELFCLASS64
    isle = ei_data == ELFDATA2LSB
    tokens = _ARCH_MARKERS.get(machine, _UNKNOWN_MARKERS)
    return tokens[(2 if is64 else 0) + (0 if isle else 1)]
