"""End-to-end extraction tests against synthetic ELF files."""

import os
import struct

import pytest

from shared.logger import ToolLogger

from elfdeps.analyzers.policy import GNU_HASH_REQUIREMENT
from elfdeps.core.engine import DependencyEngine
from elfdeps.core.exceptions import HeaderParseError, NotAnObjectError
from elfdeps.core.models import DependencyKind, ObjectKind, ScanOptions
from elfdeps.parsers.elf_parser import (
    EM_386,
    EM_ALPHA,
    EM_PPC64,
    ET_EXEC,
    ET_REL,
    SHT_DYNAMIC,
    SHT_GNU_VERDEF,
    SHT_GNU_VERNEED,
    ELFParser,
)

INTERP = "/lib64/ld-linux-x86-64.so.2"

# ELF64 e_shoff and section header field offsets.
_E64_SHOFF = 40
_SHDR64_SIZE = 64
_SH64_SIZE = 32
_SH64_ENTSIZE = 56


def _section(data, sh_type):
    parser = ELFParser(data, name="image.so")
    parser.parse()
    return next(sh for sh in parser.sections() if sh.sh_type == sh_type)


def _patch(data, offset, fmt, value):
    buf = bytearray(data)
    struct.pack_into(fmt, buf, offset, value)
    return bytes(buf)


def _patch_header(data, sh_type, field, fmt, value):
    """Overwrite *field* of the first section header of *sh_type*."""
    sh = _section(data, sh_type)
    (shoff,) = struct.unpack_from("<Q", data, _E64_SHOFF)
    return _patch(data, shoff + sh.index * _SHDR64_SIZE + field, fmt, value)


@pytest.fixture
def make_engine():
    def _make(**options):
        logger = ToolLogger("test-engine", console_output=False)
        return DependencyEngine(ScanOptions(**options), logger=logger)
    return _make


@pytest.fixture
def libfoo(elf_image):
    return (
        elf_image()
        .soname("libfoo.so.1")
        .needed("libc.so.6")
        .hash()
        .gnu_hash()
        .verdef("libfoo.so.1", base=True)
        .verdef("LIBFOO_1.0")
        .verneed("libc.so.6", "GLIBC_2.2.5")
    )


class TestSharedObject:

    def test_provides_and_requires(self, make_engine, write_elf, libfoo):
        result = make_engine().process(str(write_elf(libfoo)))
        assert result.ok
        assert result.kind is ObjectKind.SHARED_OBJECT
        assert result.bits == 64
        assert result.soname == "libfoo.so.1"
        assert result.provides == [
            "libfoo.so.1(LIBFOO_1.0)(64bit)",
            "libfoo.so.1()(64bit)",
        ]
        assert result.requires == [
            "libc.so.6()(64bit)",
            "libc.so.6(GLIBC_2.2.5)(64bit)",
        ]

    def test_arch_pass(self, make_engine, write_elf, libfoo):
        result = make_engine(add_arch=True).process(str(write_elf(libfoo)))
        assert result.provides == [
            "libfoo.so.1(LIBFOO_1.0)(64bit)",
            "libfoo.so.1(LIBFOO_1.0)(x86_64)",
            "libfoo.so.1()(64bit)",
            "libfoo.so.1()(x86_64)",
        ]

    def test_arch_pass_only(self, make_engine, write_elf, libfoo):
        result = make_engine(add_arch=True, add_word_size=False).process(str(write_elf(libfoo)))
        assert result.provides == ["libfoo.so.1(LIBFOO_1.0)(x86_64)", "libfoo.so.1()(x86_64)"]
        assert result.requires == ["libc.so.6()(x86_64)", "libc.so.6(GLIBC_2.2.5)(x86_64)"]

    def test_soname_only(self, make_engine, write_elf, libfoo):
        result = make_engine(soname_only=True).process(str(write_elf(libfoo)))
        assert result.provides == ["libfoo.so.1()(64bit)"]
        assert result.requires == ["libc.so.6()(64bit)"]

    def test_32bit_has_no_marker(self, make_engine, write_elf, elf_image):
        img = (
            elf_image(bits=32, machine=EM_386)
            .soname("libfoo.so.1")
            .needed("libc.so.6")
            .verdef("libfoo.so.1", base=True)
            .verdef("LIBFOO_1.0")
        )
        result = make_engine().process(str(write_elf(img)))
        assert result.provides == ["libfoo.so.1(LIBFOO_1.0)", "libfoo.so.1"]
        assert result.requires == ["libc.so.6"]

    def test_big_endian(self, make_engine, write_elf, elf_image):
        img = elf_image(little=False, machine=EM_PPC64).soname("libbe.so.1").needed("libc.so.6")
        result = make_engine(add_arch=True).process(str(write_elf(img)))
        assert result.provides == ["libbe.so.1()(64bit)", "libbe.so.1()(ppc64)"]
        assert result.requires == ["libc.so.6()(64bit)", "libc.so.6()(ppc64)"]

    def test_alpha_has_no_word_size_marker(self, make_engine, write_elf, elf_image):
        img = elf_image(machine=EM_ALPHA).soname("libfoo.so.1")
        result = make_engine().process(str(write_elf(img)))
        assert result.provides == ["libfoo.so.1"]

    def test_verdef_base_persists_and_all_aux_emitted(self, make_engine, write_elf, elf_image):
        img = (
            elf_image()
            .soname("libfoo.so.1")
            .verdef("libfoo.so.1", base=True)
            .verdef("LIBFOO_1.0")
            .verdef("LIBFOO_2.0", "LIBFOO_1.0")
        )
        result = make_engine().process(str(write_elf(img)))
        assert result.provides == [
            "libfoo.so.1(LIBFOO_1.0)(64bit)",
            "libfoo.so.1(LIBFOO_2.0)(64bit)",
            "libfoo.so.1(LIBFOO_1.0)(64bit)",
            "libfoo.so.1()(64bit)",
        ]

    def test_verdef_without_base_emits_nothing(self, make_engine, write_elf, elf_image):
        img = elf_image().soname("libfoo.so.1").verdef("LIBFOO_1.0")
        result = make_engine().process(str(write_elf(img)))
        assert result.provides == ["libfoo.so.1()(64bit)"]

    def test_multiple_verneed_records(self, make_engine, write_elf, elf_image):
        img = (
            elf_image()
            .verneed("libc.so.6", "GLIBC_2.2.5", "GLIBC_2.14")
            .verneed("libm.so.6", "GLIBC_2.29")
        )
        result = make_engine().process(str(write_elf(img)))
        assert result.requires == [
            "libc.so.6(GLIBC_2.2.5)(64bit)",
            "libc.so.6(GLIBC_2.14)(64bit)",
            "libm.so.6(GLIBC_2.29)(64bit)",
        ]


class TestGnuHash:

    def test_gnu_hash_only_requires_loader_support(self, make_engine, write_elf, elf_image):
        img = elf_image().soname("libfoo.so.1").needed("libc.so.6").gnu_hash()
        result = make_engine().process(str(write_elf(img)))
        assert result.requires == ["libc.so.6()(64bit)", GNU_HASH_REQUIREMENT]

    def test_classic_hash_suppresses_token(self, make_engine, write_elf, libfoo):
        result = make_engine().process(str(write_elf(libfoo)))
        assert GNU_HASH_REQUIREMENT not in result.requires

    def test_soname_only_suppresses_token(self, make_engine, write_elf, elf_image):
        img = elf_image().gnu_hash()
        result = make_engine(soname_only=True).process(str(write_elf(img)))
        assert GNU_HASH_REQUIREMENT not in result.requires


class TestSonameSynthesis:

    def test_basename_fallback(self, make_engine, write_elf, elf_image):
        path = write_elf(elf_image().needed("libc.so.6"), name="libbar.so.2")
        result = make_engine().process(str(path))
        assert result.soname == "libbar.so.2"
        assert result.provides == ["libbar.so.2()(64bit)"]

    def test_fallback_disabled(self, make_engine, write_elf, elf_image):
        path = write_elf(elf_image(), name="libbar.so.2")
        result = make_engine(fake_soname=False).process(str(path))
        assert result.soname is None
        assert result.provides == []

    def test_fallback_is_still_filtered(self, make_engine, write_elf, elf_image):
        path = write_elf(elf_image(), name="plugin.so")
        assert make_engine().process(str(path)).provides == []
        assert make_engine(filter_soname=False).process(str(path)).provides == [
            "plugin.so()(64bit)",
        ]

    def test_debug_entry_marks_pie(self, make_engine, write_elf, elf_image):
        img = elf_image().soname("libfoo.so.1").debug().needed("libc.so.6")
        result = make_engine().process(str(write_elf(img)))
        assert result.provides == []
        assert result.requires == ["libc.so.6()(64bit)"]


class TestFiltering:

    def test_unsane_sonames_never_emitted(self, make_engine, write_elf, elf_image):
        img = (
            elf_image()
            .soname("notalib")
            .needed("foo", "plugin.so", "ld-linux-x86-64.so.2", "libc.so.6")
            .verneed("weird", "V1")
        )
        result = make_engine().process(str(write_elf(img)))
        assert result.provides == []
        assert result.requires == [
            "ld-linux-x86-64.so.2()(64bit)",
            "libc.so.6()(64bit)",
        ]
        for dep in result.provides + result.requires:
            assert not dep.startswith(("notalib", "foo", "plugin", "weird"))

    def test_filter_disabled(self, make_engine, write_elf, elf_image):
        img = elf_image(e_type=ET_EXEC).needed("foo")
        result = make_engine(filter_soname=False).process(str(write_elf(img, name="prog")))
        assert result.requires == ["foo()(64bit)"]


class TestExecutable:

    def _prog(self, elf_image):
        return elf_image(e_type=ET_EXEC).with_interp(INTERP).needed("libc.so.6").gnu_hash()

    def test_executable(self, make_engine, write_elf, elf_image):
        result = make_engine().process(str(write_elf(self._prog(elf_image), name="prog")))
        assert result.kind is ObjectKind.EXECUTABLE
        assert result.interpreter == INTERP
        assert result.provides == []
        assert result.requires == ["libc.so.6()(64bit)", GNU_HASH_REQUIREMENT]

    def test_require_interp(self, make_engine, write_elf, elf_image):
        path = write_elf(self._prog(elf_image), name="prog")
        result = make_engine(require_interp=True).process(str(path))
        assert result.requires[-1] == INTERP

    def test_non_executable_with_interpreter_requires_nothing(
        self, make_engine, write_elf, elf_image
    ):
        img = self._prog(elf_image).verneed("libc.so.6", "GLIBC_2.34")
        path = write_elf(img, name="prog", mode=0o644)
        result = make_engine().process(str(path))
        assert result.requires == []

    def test_library_without_interpreter_ignores_mode(self, make_engine, write_elf, libfoo):
        result = make_engine().process(str(write_elf(libfoo, mode=0o644)))
        assert "libc.so.6()(64bit)" in result.requires


class TestNonObjects:

    def test_relocatable_contributes_nothing(self, make_engine, write_elf, elf_image):
        img = elf_image(e_type=ET_REL).soname("libfoo.so.1").needed("libc.so.6").gnu_hash()
        result = make_engine().process(str(write_elf(img, name="foo.o")))
        assert result.ok
        assert result.kind is ObjectKind.OTHER
        assert result.provides == result.requires == []

    def test_non_elf_is_skipped(self, make_engine, tmp_path):
        path = tmp_path / "script.sh"
        path.write_text("#!/bin/sh\necho hi\n")
        result = make_engine().process(str(path))
        assert result.ok
        assert result.kind is ObjectKind.OTHER
        assert result.provides == result.requires == []

    def test_missing_file_fails(self, make_engine, tmp_path):
        result = make_engine().process(str(tmp_path / "missing.so"))
        assert not result.ok
        assert result.error

    def test_broken_header_fails(self, make_engine, write_elf):
        path = write_elf(b"\x7fELF\x02\x01\x01" + b"\x00" * 20, name="broken.so")
        result = make_engine().process(str(path))
        assert not result.ok
        assert "truncated" in result.error

    def test_scan_raises(self, make_engine):
        engine = make_engine()
        with pytest.raises(NotAnObjectError):
            engine.scan_bytes(b"plain text", "x.txt")
        with pytest.raises(HeaderParseError):
            engine.scan_bytes(b"\x7fELF\x09" + b"\x00" * 60, "bad.so")


class TestBatch:

    def test_failure_does_not_stop_batch(self, make_engine, write_elf, libfoo, tmp_path):
        good = str(write_elf(libfoo))
        results = list(make_engine().process_many([str(tmp_path / "nope"), good]))
        assert [r.ok for r in results] == [False, True]
        assert results[1].dependencies(DependencyKind.PROVIDES)[-1] == "libfoo.so.1()(64bit)"

    def test_repeat_scan_is_identical(self, make_engine, write_elf, libfoo):
        engine = make_engine(add_arch=True)
        path = str(write_elf(libfoo))
        assert engine.process(path) == engine.process(path)

    def test_scan_bytes_matches_file_scan(self, make_engine, write_elf, libfoo):
        engine = make_engine()
        path = write_elf(libfoo)
        from_file = engine.scan(str(path))
        from_bytes = engine.scan_bytes(path.read_bytes(), str(path))
        assert from_file.provides == from_bytes.provides
        assert from_file.requires == from_bytes.requires


class TestDamagedTables:

    def test_dynamic_cut_mid_entry(self, make_engine, write_elf, elf_image):
        data = elf_image().needed("libc.so.6", "libm.so.6").build()
        data = _patch_header(data, SHT_DYNAMIC, _SH64_SIZE, "<Q", 24)
        result = make_engine().process(str(write_elf(data)))
        assert result.ok
        assert result.requires == ["libc.so.6()(64bit)"]

    def test_zero_entsize_uses_natural_stride(self, make_engine, write_elf, elf_image):
        data = elf_image().needed("libc.so.6", "libm.so.6").build()
        data = _patch_header(data, SHT_DYNAMIC, _SH64_ENTSIZE, "<Q", 0)
        result = make_engine().process(str(write_elf(data)))
        assert result.requires == ["libc.so.6()(64bit)", "libm.so.6()(64bit)"]

    def test_unresolvable_needed_is_skipped(self, make_engine, write_elf, elf_image):
        data = elf_image().needed("libc.so.6", "libm.so.6").build()
        dynamic = _section(data, SHT_DYNAMIC)
        data = _patch(data, dynamic.sh_offset + 8, "<Q", 0xFFFF)
        result = make_engine().process(str(write_elf(data)))
        assert result.ok
        assert result.requires == ["libm.so.6()(64bit)"]

    def test_bad_second_need_name_keeps_first(self, make_engine, write_elf, elf_image):
        data = elf_image().verneed("libc.so.6", "GLIBC_2.2.5", "GLIBC_2.14").build()
        verneed = _section(data, SHT_GNU_VERNEED)
        # Verneed is 16 bytes, each Vernaux 16 bytes with vna_name at +8.
        data = _patch(data, verneed.sh_offset + 16 + 16 + 8, "<I", 0xFFFF)
        result = make_engine().process(str(write_elf(data)))
        assert result.ok
        assert result.requires == ["libc.so.6(GLIBC_2.2.5)(64bit)"]

    def test_truncated_verdef_keeps_earlier_provides(self, make_engine, write_elf, elf_image):
        data = (
            elf_image()
            .soname("libfoo.so.1")
            .verdef("libfoo.so.1", base=True)
            .verdef("LIBFOO_1.0")
            .verdef("LIBFOO_2.0")
            .build()
        )
        # Each record here is a 20-byte Verdef plus one 8-byte Verdaux.
        data = _patch_header(data, SHT_GNU_VERDEF, _SH64_SIZE, "<Q", 2 * 28)
        result = make_engine().process(str(write_elf(data)))
        assert result.ok
        assert result.provides == [
            "libfoo.so.1(LIBFOO_1.0)(64bit)",
            "libfoo.so.1()(64bit)",
        ]


class TestRawNames:

    def test_non_utf8_names_round_trip(self, make_engine, write_elf, elf_image):
        img = elf_image().soname(b"lib\xe9.so.1").needed(b"lib\xff.so.2")
        result = make_engine().process(str(write_elf(img)))
        assert [os.fsencode(d) for d in result.provides] == [b"lib\xe9.so.1()(64bit)"]
        assert [os.fsencode(d) for d in result.requires] == [b"lib\xff.so.2()(64bit)"]
