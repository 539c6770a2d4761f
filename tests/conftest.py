"""Shared fixtures: a small builder for synthetic ELF images."""

from __future__ import annotations

import os
import struct
from pathlib import Path
from typing import Callable, Optional

import pytest

from elfdeps.parsers.elf_parser import (
    DT_DEBUG,
    DT_GNU_HASH,
    DT_HASH,
    DT_NEEDED,
    DT_SONAME,
    ELFCLASS32,
    ELFCLASS64,
    ELFDATA2LSB,
    ELFDATA2MSB,
    EM_X86_64,
    ET_DYN,
    PT_INTERP,
    PT_LOAD,
    SHT_DYNAMIC,
    SHT_GNU_VERDEF,
    SHT_GNU_VERNEED,
    SHT_STRTAB,
    VER_FLG_BASE,
)


class StringTable:
    """Accumulates NUL-terminated strings, returning their offsets."""

    def __init__(self) -> None:
        self._data = bytearray(b"\x00")
        self._offsets: dict[bytes, int] = {b"": 0}

    def add(self, text: str | bytes) -> int:
        raw = text if isinstance(text, bytes) else text.encode()
        if raw not in self._offsets:
            self._offsets[raw] = len(self._data)
            self._data += raw + b"\x00"
        return self._offsets[raw]

    def data(self) -> bytes:
        return bytes(self._data)


class ElfImage:
    """Builds a minimal ELF file with dynamic and versioning sections.

    Layout: header, program headers, interpreter string, ``.dynstr``,
    ``.dynamic``, ``.gnu.version_d``, ``.gnu.version_r``, ``.shstrtab``,
    section header table.
    """

    def __init__(
        self,
        *,
        bits: int = 64,
        little: bool = True,
        e_type: int = ET_DYN,
        machine: int = EM_X86_64,
    ) -> None:
        self.bits = bits
        self.little = little
        self.e_type = e_type
        self.machine = machine
        self.interp: Optional[str] = None
        self.dynstr = StringTable()
        self.dynamic: list[tuple[int, int]] = []
        self.verdefs: list[tuple[int, list[int]]] = []
        self.verneeds: list[tuple[int, list[int]]] = []

    @property
    def _e(self) -> str:
        return "<" if self.little else ">"

    @property
    def _is64(self) -> bool:
        return self.bits == 64

    # -- content ------------------------------------------------------- #

    def with_interp(self, path: str) -> ElfImage:
        self.interp = path
        return self

    def soname(self, name: str | bytes) -> ElfImage:
        self.dynamic.append((DT_SONAME, self.dynstr.add(name)))
        return self

    def needed(self, *names: str | bytes) -> ElfImage:
        for name in names:
            self.dynamic.append((DT_NEEDED, self.dynstr.add(name)))
        return self

    def hash(self) -> ElfImage:
        self.dynamic.append((DT_HASH, 0x1000))
        return self

    def gnu_hash(self) -> ElfImage:
        self.dynamic.append((DT_GNU_HASH, 0x2000))
        return self

    def debug(self) -> ElfImage:
        self.dynamic.append((DT_DEBUG, 0))
        return self

    def verdef(self, *names: str, base: bool = False) -> ElfImage:
        flags = VER_FLG_BASE if base else 0
        self.verdefs.append((flags, [self.dynstr.add(n) for n in names]))
        return self

    def verneed(self, filename: str, *versions: str) -> ElfImage:
        self.verneeds.append(
            (self.dynstr.add(filename), [self.dynstr.add(v) for v in versions])
        )
        return self

    # -- encoding ------------------------------------------------------ #

    def _dynamic_bytes(self) -> bytes:
        fmt = f"{self._e}qQ" if self._is64 else f"{self._e}iI"
        out = b"".join(struct.pack(fmt, tag, val) for tag, val in self.dynamic)
        return out + struct.pack(fmt, 0, 0)

    def _verdef_bytes(self) -> bytes:
        out = bytearray()
        for i, (flags, names) in enumerate(self.verdefs):
            last = i == len(self.verdefs) - 1
            vd_next = 0 if last else 20 + 8 * len(names)
            out += struct.pack(
                f"{self._e}HHHHIII", 1, flags, i + 1, len(names), 0, 20, vd_next
            )
            for j, name in enumerate(names):
                vda_next = 0 if j == len(names) - 1 else 8
                out += struct.pack(f"{self._e}II", name, vda_next)
        return bytes(out)

    def _verneed_bytes(self) -> bytes:
        out = bytearray()
        other = 2
        for i, (filename, versions) in enumerate(self.verneeds):
            last = i == len(self.verneeds) - 1
            vn_next = 0 if last else 16 + 16 * len(versions)
            out += struct.pack(
                f"{self._e}HHIII", 1, len(versions), filename, 16, vn_next
            )
            for j, name in enumerate(versions):
                vna_next = 0 if j == len(versions) - 1 else 16
                out += struct.pack(f"{self._e}IHHII", 0, 0, other, name, vna_next)
                other += 1
        return bytes(out)

    def build(self) -> bytes:
        e = self._e
        ehsize = 64 if self._is64 else 52
        phentsize = 56 if self._is64 else 32
        shentsize = 64 if self._is64 else 40

        phdrs: list[tuple[int, int, int]] = []  # (type, offset, size)
        phnum = 2 if self.interp is not None else 1
        cursor = ehsize + phnum * phentsize
        blob = bytearray()

        if self.interp is not None:
            interp = self.interp.encode() + b"\x00"
            phdrs.append((PT_INTERP, cursor, len(interp)))
            blob += interp
            cursor += len(interp)

        shstr = StringTable()
        # (name, type, offset, size, link, info, entsize)
        sections: list[tuple[int, int, int, int, int, int, int]] = []

        def place(name: str, sh_type: int, data: bytes, link: int = 0,
                  info: int = 0, entsize: int = 0) -> None:
            nonlocal cursor
            sections.append(
                (shstr.add(name), sh_type, cursor, len(data), link, info, entsize)
            )
            blob.extend(data)
            cursor += len(data)

        place(".dynstr", SHT_STRTAB, self.dynstr.data())
        dynstr_index = 1
        place(".dynamic", SHT_DYNAMIC, self._dynamic_bytes(), link=dynstr_index,
              entsize=16 if self._is64 else 8)
        if self.verdefs:
            place(".gnu.version_d", SHT_GNU_VERDEF, self._verdef_bytes(),
                  link=dynstr_index, info=len(self.verdefs))
        if self.verneeds:
            place(".gnu.version_r", SHT_GNU_VERNEED, self._verneed_bytes(),
                  link=dynstr_index, info=len(self.verneeds))
        shstr.add(".shstrtab")
        place(".shstrtab", SHT_STRTAB, shstr.data())

        phdrs.append((PT_LOAD, 0, cursor))

        shoff = cursor
        shnum = len(sections) + 1
        shstrndx = shnum - 1

        ident = b"\x7fELF" + bytes([
            ELFCLASS64 if self._is64 else ELFCLASS32,
            ELFDATA2LSB if self.little else ELFDATA2MSB,
            1,
        ]) + b"\x00" * 9
        if self._is64:
            header = struct.pack(
                f"{e}HHIQQQIHHHHHH", self.e_type, self.machine, 1, 0,
                ehsize, shoff, 0, ehsize, phentsize, phnum, shentsize,
                shnum, shstrndx,
            )
        else:
            header = struct.pack(
                f"{e}HHIIIIIHHHHHH", self.e_type, self.machine, 1, 0,
                ehsize, shoff, 0, ehsize, phentsize, phnum, shentsize,
                shnum, shstrndx,
            )

        ph_bytes = bytearray()
        for p_type, offset, size in phdrs:
            if self._is64:
                ph_bytes += struct.pack(
                    f"{e}IIQQQQQQ", p_type, 4, offset, offset, offset, size, size, 1
                )
            else:
                ph_bytes += struct.pack(
                    f"{e}IIIIIIII", p_type, offset, offset, offset, size, size, 4, 1
                )

        sh_bytes = bytearray(b"\x00" * shentsize)
        for name, sh_type, offset, size, link, info, entsize in sections:
            if self._is64:
                sh_bytes += struct.pack(
                    f"{e}IIQQQQIIQQ", name, sh_type, 0, 0, offset, size,
                    link, info, 1, entsize,
                )
            else:
                sh_bytes += struct.pack(
                    f"{e}IIIIIIIIII", name, sh_type, 0, 0, offset, size,
                    link, info, 1, entsize,
                )

        return ident + header + bytes(ph_bytes) + bytes(blob) + bytes(sh_bytes)


@pytest.fixture
def elf_image() -> Callable[..., ElfImage]:
    """Factory for :class:`ElfImage` builders."""
    return ElfImage


@pytest.fixture
def write_elf(tmp_path: Path) -> Callable[..., Path]:
    """Write an image under *tmp_path* with the given name and mode."""

    def _write(image: ElfImage | bytes, name: str = "libfoo.so.1",
               mode: int = 0o755) -> Path:
        path = tmp_path / name
        data = image if isinstance(image, bytes) else image.build()
        path.write_bytes(data)
        os.chmod(path, mode)
        return path

    return _write
