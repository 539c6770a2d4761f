"""
ELF Structural Reader
======================

Manual struct-based reader for the Executable and Linkable Format (ELF)
exposing exactly the structures the dependency generator needs:

    - ELF identification and file header
    - Program headers (segments)
    - Section headers
    - Dynamic section entries
    - String-table lookups
    - GNU symbol-versioning records (``SHT_GNU_verdef``, ``SHT_GNU_verneed``)

All parsing is performed using :mod:`struct`.  Both ELF32 and ELF64 in
either byte order are supported.  Every offset taken from the file is
treated as untrusted and checked against the buffer before it is read;
truncated tables end the corresponding iteration instead of raising.

References:
    - TIS Committee. (1995). Tool Interface Standard (TIS) Executable and
      Linkable Format (ELF) Specification, Version 1.2.
    - Linux Standard Base Core Specification 5.0, section 10.7,
      Symbol Versioning.
    - Linux man page: elf(5).
"""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass
from typing import Iterator, Optional

from elfdeps.core.exceptions import HeaderParseError, NotAnObjectError


# ---------------------------------------------------------------------------
# ELF Constants
# ---------------------------------------------------------------------------

ELF_MAGIC: bytes = b"\x7fELF"
EI_NIDENT: int = 16

# ELF Class (32-bit vs 64-bit)
ELFCLASS32: int = 1
ELFCLASS64: int = 2

# Data encoding (endianness)
ELFDATA2LSB: int = 1  # Little-endian
ELFDATA2MSB: int = 2  # Big-endian

# ELF type
ET_REL: int = 1
ET_EXEC: int = 2
ET_DYN: int = 3

# Machine architectures
EM_SPARC: int = 2
EM_386: int = 3
EM_68K: int = 4
EM_MIPS: int = 8
EM_PARISC: int = 15
EM_SPARC32PLUS: int = 18
EM_PPC: int = 20
EM_PPC64: int = 21
EM_S390: int = 22
EM_ARM: int = 40
EM_FAKE_ALPHA: int = 41
EM_SH: int = 42
EM_SPARCV9: int = 43
EM_IA_64: int = 50
EM_X86_64: int = 62
EM_AARCH64: int = 183
EM_RISCV: int = 243
EM_ALPHA: int = 0x9026

# Section header types
SHT_NULL: int = 0
SHT_STRTAB: int = 3
SHT_DYNAMIC: int = 6
SHT_GNU_VERDEF: int = 0x6FFFFFFD
SHT_GNU_VERNEED: int = 0x6FFFFFFE

# Special section / segment counts
SHN_UNDEF: int = 0
PN_XNUM: int = 0xFFFF

# Program header types
PT_LOAD: int = 1
PT_INTERP: int = 3

# Dynamic tags
DT_NULL: int = 0
DT_NEEDED: int = 1
DT_HASH: int = 4
DT_SONAME: int = 14
DT_DEBUG: int = 21
DT_GNU_HASH: int = 0x6FFFFEF5

# Version definition flags
VER_FLG_BASE: int = 0x1


# ---------------------------------------------------------------------------
# Parsed structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ELFHeader:
    """ELF identification and the file-header fields used here."""
    ei_class: int
    ei_data: int
    e_type: int
    e_machine: int
    e_phoff: int
    e_shoff: int
    e_phentsize: int
    e_phnum: int
    e_shentsize: int
    e_shnum: int
    e_shstrndx: int


@dataclass(frozen=True, slots=True)
class ProgramHeader:
    p_type: int
    p_flags: int
    p_offset: int
    p_vaddr: int
    p_filesz: int
    p_memsz: int


@dataclass(frozen=True, slots=True)
class SectionHeader:
    index: int
    sh_name: int
    sh_type: int
    sh_flags: int
    sh_offset: int
    sh_size: int
    sh_link: int
    sh_info: int
    sh_entsize: int


@dataclass(frozen=True, slots=True)
class DynamicEntry:
    d_tag: int
    d_val: int


@dataclass(frozen=True, slots=True)
class VersionDefinition:
    """``Elfxx_Verdef`` record; *offset* is relative to its section."""
    offset: int
    vd_version: int
    vd_flags: int
    vd_ndx: int
    vd_cnt: int
    vd_hash: int
    vd_aux: int
    vd_next: int


@dataclass(frozen=True, slots=True)
class VersionDefinitionAux:
    offset: int
    vda_name: int
    vda_next: int


@dataclass(frozen=True, slots=True)
class VersionNeed:
    """``Elfxx_Verneed`` record; *offset* is relative to its section."""
    offset: int
    vn_version: int
    vn_cnt: int
    vn_file: int
    vn_aux: int
    vn_next: int


@dataclass(frozen=True, slots=True)
class VersionNeedAux:
    offset: int
    vna_hash: int
    vna_flags: int
    vna_other: int
    vna_name: int
    vna_next: int


# Version records share one layout for ELF32 and ELF64.
_VERDEF_FMT = "HHHHIII"
_VERDAUX_FMT = "II"
_VERNEED_FMT = "HHIII"
_VERNAUX_FMT = "IHHII"


# ---------------------------------------------------------------------------
# Chained record cursor
# ---------------------------------------------------------------------------

class _RecordCursor:
    """Walk records chained by relative ``next`` offsets in a flat buffer.

    Records are found by adding each record's own ``next`` field to its
    offset, never by fixed stride.  The walk ends at the first record that
    does not fit inside ``[base, end)``, at a zero ``next`` field, or
    after *limit* records, whichever comes first.

    Yields ``(relative_offset, fields)`` tuples.
    """

    def __init__(
        self,
        data: bytes,
        fmt: str,
        *,
        base: int,
        end: int,
        start: int,
        limit: int,
        next_index: int,
    ) -> None:
        self._data = data
        self._struct = struct.Struct(fmt)
        self._base = base
        self._end = end
        self._start = start
        self._limit = limit
        self._next_index = next_index

    def __iter__(self) -> Iterator[tuple[int, tuple[int, ...]]]:
        rel = self._start
        for _ in range(self._limit):
            absolute = self._base + rel
            if absolute + self._struct.size > self._end:
                return
            fields = self._struct.unpack_from(self._data, absolute)
            yield rel, fields
            step = fields[self._next_index]
            if step == 0:
                return
            rel += step


# ---------------------------------------------------------------------------
# ELF Parser
# ---------------------------------------------------------------------------

class ELFParser:
    """Struct-based ELF reader with bounds-checked accessors.

    Usage::

        parser = ELFParser(raw_bytes, name="/usr/lib64/libz.so.1")
        parser.parse()
        for sh in parser.sections():
            if sh.sh_type == SHT_DYNAMIC:
                for entry in parser.dynamic_entries(sh):
                    ...

    :meth:`parse` raises :class:`NotAnObjectError` when the buffer lacks
    the ELF magic and :class:`HeaderParseError` when the identification
    or file header is unusable.  Nothing after the header raises.
    """

    def __init__(self, data: bytes, name: str = "<memory>") -> None:
        """Initialise the parser with raw file contents.

        Args:
            data: Complete ELF file contents.
            name: Label used in error messages (usually the file path).
        """
        self._data: bytes = data
        self._name: str = name
        self._header: Optional[ELFHeader] = None
        self._sections: list[SectionHeader] = []
        self._program_headers: list[ProgramHeader] = []
        self._endian: str = "<"
        self._is_64bit: bool = False

    # ------------------------------------------------------------------ #
    #  Public interface
    # ------------------------------------------------------------------ #

    def parse(self) -> ELFHeader:
        """Parse the header and the section / program header tables.

        Returns:
            The parsed :class:`ELFHeader`.
        """
        data = self._data
        if len(data) < EI_NIDENT or data[:4] != ELF_MAGIC:
            raise NotAnObjectError(self._name, "not an ELF object")

        ei_class = data[4]
        ei_data = data[5]
        if ei_class not in (ELFCLASS32, ELFCLASS64):
            raise HeaderParseError(self._name, f"invalid ELF class {ei_class}")
        if ei_data not in (ELFDATA2LSB, ELFDATA2MSB):
            raise HeaderParseError(self._name, f"invalid data encoding {ei_data}")

        self._is_64bit = ei_class == ELFCLASS64
        self._endian = "<" if ei_data == ELFDATA2LSB else ">"

        if self._is_64bit:
            fmt = f"{self._endian}HHIQQQIHHHHHH"
        else:
            fmt = f"{self._endian}HHIIIIIHHHHHH"
        if EI_NIDENT + struct.calcsize(fmt) > len(data):
            raise HeaderParseError(self._name, "truncated ELF header")

        (
            e_type, e_machine, _e_version, _e_entry,
            e_phoff, e_shoff, _e_flags, _e_ehsize,
            e_phentsize, e_phnum, e_shentsize, e_shnum,
            e_shstrndx,
        ) = struct.unpack_from(fmt, data, EI_NIDENT)

        self._header = ELFHeader(
            ei_class=ei_class,
            ei_data=ei_data,
            e_type=e_type,
            e_machine=e_machine,
            e_phoff=e_phoff,
            e_shoff=e_shoff,
            e_phentsize=e_phentsize,
            e_phnum=e_phnum,
            e_shentsize=e_shentsize,
            e_shnum=e_shnum,
            e_shstrndx=e_shstrndx,
        )

        self._parse_section_headers()
        self._parse_program_headers()
        return self._header

    @property
    def header(self) -> ELFHeader:
        if self._header is None:
            raise RuntimeError("parse() has not been called")
        return self._header

    @property
    def is_64bit(self) -> bool:
        return self._is_64bit

    @property
    def is_little_endian(self) -> bool:
        return self._endian == "<"

    @property
    def size(self) -> int:
        """Size of the underlying file image in bytes."""
        return len(self._data)

    def sections(self) -> list[SectionHeader]:
        return list(self._sections)

    def program_headers(self) -> list[ProgramHeader]:
        return list(self._program_headers)

    def read_cstring(self, offset: int) -> Optional[str]:
        """Read a NUL-terminated string at a file offset.

        Returns ``None`` when *offset* lies outside the file.  A string
        that runs to the end of the file without a terminator is returned
        as-is.
        """
        if offset < 0 or offset >= len(self._data):
            return None
        end = self._data.find(b"\x00", offset)
        if end == -1:
            end = len(self._data)
        return self._decode(self._data[offset:end])

    def string_at(self, strtab_index: int, offset: int) -> Optional[str]:
        """Resolve *offset* in the string table section *strtab_index*.

        Returns ``None`` when the index does not name a ``SHT_STRTAB``
        section, the offset lies outside it, or the string is not
        terminated inside the section.
        """
        if strtab_index <= SHN_UNDEF or strtab_index >= len(self._sections):
            return None
        sh = self._sections[strtab_index]
        if sh.sh_type != SHT_STRTAB or offset < 0 or offset >= sh.sh_size:
            return None
        start = sh.sh_offset + offset
        end = self._section_end(sh)
        if start >= end:
            return None
        nul = self._data.find(b"\x00", start, end)
        if nul == -1:
            return None
        return self._decode(self._data[start:nul])

    def dynamic_entries(self, sh: SectionHeader) -> Iterator[DynamicEntry]:
        """Yield entries of a ``SHT_DYNAMIC`` section up to ``DT_NULL``.

        The entry count is ``sh_size / sh_entsize``; entries are read at
        the natural ``ElfXX_Dyn`` stride.
        """
        if self._is_64bit:
            dyn = struct.Struct(f"{self._endian}qQ")
        else:
            dyn = struct.Struct(f"{self._endian}iI")

        entsize = sh.sh_entsize or dyn.size
        count = sh.sh_size // entsize
        end = self._section_end(sh)

        for i in range(count):
            offset = sh.sh_offset + i * dyn.size
            if offset + dyn.size > end:
                return
            d_tag, d_val = dyn.unpack_from(self._data, offset)
            if d_tag == DT_NULL:
                return
            yield DynamicEntry(d_tag, d_val)

    def version_definitions(self, sh: SectionHeader) -> Iterator[VersionDefinition]:
        """Yield at most ``sh_info`` ``Verdef`` records of *sh*."""
        cursor = self._cursor(
            sh, _VERDEF_FMT, start=0, limit=sh.sh_info, next_index=6
        )
        for rel, fields in cursor:
            yield VersionDefinition(rel, *fields)

    def definition_aux(
        self, sh: SectionHeader, vd: VersionDefinition
    ) -> Iterator[VersionDefinitionAux]:
        """Yield at most ``vd_cnt`` ``Verdaux`` records chained from *vd*."""
        cursor = self._cursor(
            sh, _VERDAUX_FMT, start=vd.offset + vd.vd_aux,
            limit=vd.vd_cnt, next_index=1,
        )
        for rel, fields in cursor:
            yield VersionDefinitionAux(rel, *fields)

    def version_needs(self, sh: SectionHeader) -> Iterator[VersionNeed]:
        """Yield at most ``sh_info`` ``Verneed`` records of *sh*."""
        cursor = self._cursor(
            sh, _VERNEED_FMT, start=0, limit=sh.sh_info, next_index=4
        )
        for rel, fields in cursor:
            yield VersionNeed(rel, *fields)

    def need_aux(
        self, sh: SectionHeader, vn: VersionNeed
    ) -> Iterator[VersionNeedAux]:
        """Yield at most ``vn_cnt`` ``Vernaux`` records chained from *vn*."""
        cursor = self._cursor(
            sh, _VERNAUX_FMT, start=vn.offset + vn.vn_aux,
            limit=vn.vn_cnt, next_index=4,
        )
        for rel, fields in cursor:
            yield VersionNeedAux(rel, *fields)

    # ------------------------------------------------------------------ #
    #  Section header parsing
    # ------------------------------------------------------------------ #

    def _parse_section_headers(self) -> None:
        """Parse the section header table, stopping at truncation."""
        h = self.header
        if h.e_shoff == 0:
            return

        if self._is_64bit:
            shdr = struct.Struct(f"{self._endian}IIQQQQIIQQ")
        else:
            shdr = struct.Struct(f"{self._endian}IIIIIIIIII")
        if h.e_shentsize < shdr.size:
            return

        count = h.e_shnum
        if count == 0:
            # Extended numbering: the real count lives in section 0's sh_size
            first = self._read_section_header(shdr, 0)
            if first is None:
                return
            count = first.sh_size

        for i in range(count):
            sh = self._read_section_header(shdr, i)
            if sh is None:
                break
            self._sections.append(sh)

    def _read_section_header(
        self, shdr: struct.Struct, index: int
    ) -> Optional[SectionHeader]:
        offset = self.header.e_shoff + index * self.header.e_shentsize
        if offset + shdr.size > len(self._data):
            return None
        (
            sh_name, sh_type, sh_flags, _sh_addr,
            sh_offset, sh_size, sh_link, sh_info,
            _sh_addralign, sh_entsize,
        ) = shdr.unpack_from(self._data, offset)
        return SectionHeader(
            index=index,
            sh_name=sh_name,
            sh_type=sh_type,
            sh_flags=sh_flags,
            sh_offset=sh_offset,
            sh_size=sh_size,
            sh_link=sh_link,
            sh_info=sh_info,
            sh_entsize=sh_entsize,
        )

    # ------------------------------------------------------------------ #
    #  Program header parsing
    # ------------------------------------------------------------------ #

    def _parse_program_headers(self) -> None:
        """Parse all program headers (segments), stopping at truncation."""
        h = self.header
        phnum = h.e_phnum
        if phnum == PN_XNUM and self._sections:
            phnum = self._sections[0].sh_info
        if h.e_phoff == 0 or phnum == 0:
            return

        if self._is_64bit:
            phdr = struct.Struct(f"{self._endian}IIQQQQQQ")
        else:
            phdr = struct.Struct(f"{self._endian}IIIIIIII")
        if h.e_phentsize < phdr.size:
            return

        for i in range(phnum):
            offset = h.e_phoff + i * h.e_phentsize
            if offset + phdr.size > len(self._data):
                break
            fields = phdr.unpack_from(self._data, offset)
            if self._is_64bit:
                p_type, p_flags, p_offset, p_vaddr, _p_paddr, p_filesz, p_memsz, _ = fields
            else:
                p_type, p_offset, p_vaddr, _p_paddr, p_filesz, p_memsz, p_flags, _ = fields
            self._program_headers.append(ProgramHeader(
                p_type=p_type,
                p_flags=p_flags,
                p_offset=p_offset,
                p_vaddr=p_vaddr,
                p_filesz=p_filesz,
                p_memsz=p_memsz,
            ))

    # ------------------------------------------------------------------ #
    #  Utility methods
    # ------------------------------------------------------------------ #

    def _section_end(self, sh: SectionHeader) -> int:
        """End offset of *sh* clamped to the file size."""
        return min(sh.sh_offset + sh.sh_size, len(self._data))

    def _cursor(
        self,
        sh: SectionHeader,
        fmt: str,
        *,
        start: int,
        limit: int,
        next_index: int,
    ) -> _RecordCursor:
        return _RecordCursor(
            self._data,
            f"{self._endian}{fmt}",
            base=sh.sh_offset,
            end=self._section_end(sh),
            start=start,
            limit=limit,
            next_index=next_index,
        )

    @staticmethod
    def _decode(raw: bytes) -> str:
        return os.fsdecode(raw)
