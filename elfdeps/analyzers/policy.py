"""
Dependency Policy
==================

Turns raw facts gathered by the scanners into emitted dependency strings.

Policy rules:
    - Soname sanity filtering (:func:`skip_soname`): every sane soname
      contains ``.so`` and ordinary linkable libraries start with ``lib``.
      The dynamic linker (``ld.``/``ld-``/``ld64.``/``ld64-``) is the one
      accepted exception; anything else needs ``--no-filter-soname``.
    - Decoration (:func:`format_dependency`): ``name`` or
      ``name(version)marker``.
    - Dual marker passes (:func:`add_decorated`): one fact yields zero,
      one or two entries depending on the enabled passes.
    - The requires gate (:func:`gen_requires`).
    - Post-scan additions (:func:`finalize`): GNU-hash loader token,
      soname provide with basename fallback, interpreter requirement.
"""

from __future__ import annotations

from typing import Optional

from elfdeps.core.models import ObjectContext, ObjectKind, ScanOptions


GNU_HASH_REQUIREMENT: str = "rtld(GNU_HASH)"

_LOADER_PREFIXES: tuple[str, ...] = ("ld.", "ld-", "ld64.", "ld64-")


def skip_soname(soname: str, filter_soname: bool = True) -> bool:
    """Return ``True`` when *soname* must not appear in any dependency.

    Blank names are always rejected.  With *filter_soname* the name must
    contain ``.so`` and start with ``lib`` or a dynamic-linker prefix.

    >>> skip_soname("libc.so.6")
    False
    >>> skip_soname("ld-linux-x86-64.so.2")
    False
    >>> skip_soname("foo.so")
    True
    >>> skip_soname("foo.so", filter_soname=False)
    False
    """
    if not soname.strip():
        return True

    if filter_soname:
        if ".so" not in soname:
            return True
        if soname.startswith(_LOADER_PREFIXES):
            return False
        return not soname.startswith("lib")

    return False


def format_dependency(
    name: str,
    version: Optional[str] = None,
    marker: Optional[str] = None,
) -> str:
    """Build ``name`` or ``name(version)marker``.

    An absent version or marker contributes an empty slot; the bare name is
    returned only when both are absent.

    >>> format_dependency("libfoo.so.1", "LIBFOO_1.0", "(64bit)")
    'libfoo.so.1(LIBFOO_1.0)(64bit)'
    >>> format_dependency("libfoo.so.1", None, "(64bit)")
    'libfoo.so.1()(64bit)'
    """
    if version is None and marker is None:
        return name
    return f"{name}({version or ''}){marker or ''}"


def add_dependency(
    deps: list[str],
    name: str,
    version: Optional[str],
    marker: Optional[str],
    options: ScanOptions,
) -> None:
    """Append one decorated entry unless *name* fails the soname filter."""
    if skip_soname(name, options.filter_soname):
        return
    deps.append(format_dependency(name, version, marker))


def add_decorated(
    deps: list[str],
    ctx: ObjectContext,
    options: ScanOptions,
    name: str,
    version: Optional[str] = None,
) -> None:
    """Run the word-size and architecture decoration passes for one fact."""
    if options.add_word_size:
        add_dependency(deps, name, version, ctx.word_size_marker, options)
    if options.add_arch:
        add_dependency(deps, name, version, ctx.arch_marker, options)


def gen_requires(ctx: ObjectContext) -> bool:
    """Requires are emitted unless the object has an interpreter but is not executable."""
    return not (ctx.interpreter is not None and not ctx.is_runtime_executable)


def basename(path: str) -> str:
    """Final ``/``-separated component of *path*, or *path* itself."""
    return path.rsplit("/", 1)[-1]


def finalize(ctx: ObjectContext, options: ScanOptions) -> None:
    """Apply the post-scan additions to *ctx*.

    Order matters for output stability: the GNU-hash token is appended to
    requires first, then the soname provide, then the interpreter
    requirement.
    """
    # Objects with only .gnu_hash need a loader that understands it.
    if (
        gen_requires(ctx)
        and ctx.has_gnu_hash
        and not ctx.has_hash
        and not options.soname_only
    ):
        ctx.requires.append(GNU_HASH_REQUIREMENT)

    # DT_DEBUG in a shared object is taken as the PIE signal.
    if ctx.kind is ObjectKind.SHARED_OBJECT and not ctx.has_debug:
        if ctx.soname is None and options.fake_soname:
            ctx.soname = basename(ctx.path)
        if ctx.soname is not None:
            add_decorated(ctx.provides, ctx, options, ctx.soname)

    if ctx.interpreter is not None and options.require_interp:
        ctx.requires.append(ctx.interpreter)
