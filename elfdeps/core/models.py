"""
elfdeps Data Models
====================

Pydantic models for the dependency generator: the immutable scan options,
the per-object scratch context mutated while scanning, and the
serialisable per-path result.

References:
    - TIS Committee. (1995). Executable and Linkable Format (ELF) Specification.
    - Drepper, U. (2011). How To Write Shared Libraries. Section 3, Maintaining APIs and ABIs.
"""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class ObjectKind(str, enum.Enum):
    """Classification of an ELF object by its ``e_type``."""
    SHARED_OBJECT = "shared_object"
    EXECUTABLE = "executable"
    OTHER = "other"


class DependencyKind(str, enum.Enum):
    """Which of the two dependency lists a run prints."""
    PROVIDES = "provides"
    REQUIRES = "requires"


# ---------------------------------------------------------------------------
# Scan options
# ---------------------------------------------------------------------------

class ScanOptions(BaseModel):
    """Immutable switches passed into every scanner.

    Attributes:
        soname_only: Suppress all versioned provides/requires.
        fake_soname: Synthesise a soname from the file basename when a
            shared object declares none.
        filter_soname: Apply the ``lib``/``ld``/``.so`` sanity filter.
        require_interp: Add the program interpreter as a requirement.
        add_arch: Run the architecture-marker decoration pass.
        add_word_size: Run the word-size-marker decoration pass.
    """
    model_config = ConfigDict(frozen=True)

    soname_only: bool = False
    fake_soname: bool = True
    filter_soname: bool = True
    require_interp: bool = False
    add_arch: bool = False
    add_word_size: bool = True


# ---------------------------------------------------------------------------
# Per-object scratch state
# ---------------------------------------------------------------------------

class ObjectContext(BaseModel):
    """Facts gathered from one object during a single scan pass.

    ``has_debug`` is a heuristic signal only: a ``DT_DEBUG`` entry in a
    shared object is taken to mean a position-independent executable,
    which must not advertise its file name as a soname.

    Attributes:
        path: Input path as given by the caller.
        kind: Object classification.
        is_runtime_executable: Any execute permission bit is set.
        bits: Address width (32 or 64).
        machine: Raw ``e_machine`` value.
        has_debug: ``DT_DEBUG`` seen in the dynamic table.
        has_hash: ``DT_HASH`` seen in the dynamic table.
        has_gnu_hash: ``DT_GNU_HASH`` seen in the dynamic table.
        soname: Declared (or synthesised) library name.
        interpreter: ``PT_INTERP`` path.
        word_size_marker: ``"(64bit)"`` or ``None``.
        arch_marker: Architecture token such as ``"(x86_64)"``.
        provides: Provided dependency strings in discovery order.
        requires: Required dependency strings in discovery order.
    """
    path: str = ""
    kind: ObjectKind = ObjectKind.OTHER
    is_runtime_executable: bool = False
    bits: int = 0
    machine: int = 0
    has_debug: bool = False
    has_hash: bool = False
    has_gnu_hash: bool = False
    soname: Optional[str] = None
    interpreter: Optional[str] = None
    word_size_marker: Optional[str] = None
    arch_marker: Optional[str] = None
    provides: list[str] = Field(default_factory=list)
    requires: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Per-path result
# ---------------------------------------------------------------------------

class DependencyResult(BaseModel):
    """Outcome of processing one input path.

    Attributes:
        path: Input path.
        ok: ``False`` when the path could not be opened or its header
            could not be parsed.
        error: Failure description when ``ok`` is ``False``.
        kind: Object classification (``other`` for skipped files).
        bits: Address width, 0 when unknown.
        machine: Raw ``e_machine`` value.
        soname: Soname used for provides, if any.
        interpreter: Program interpreter, if any.
        provides: Provided dependency strings.
        requires: Required dependency strings.
    """
    path: str
    ok: bool = True
    error: str = ""
    kind: ObjectKind = ObjectKind.OTHER
    bits: int = 0
    machine: int = 0
    soname: Optional[str] = None
    interpreter: Optional[str] = None
    provides: list[str] = Field(default_factory=list)
    requires: list[str] = Field(default_factory=list)

    @classmethod
    def from_context(cls, ctx: ObjectContext) -> DependencyResult:
        return cls(
            path=ctx.path,
            kind=ctx.kind,
            bits=ctx.bits,
            machine=ctx.machine,
            soname=ctx.soname,
            interpreter=ctx.interpreter,
            provides=list(ctx.provides),
            requires=list(ctx.requires),
        )

    def dependencies(self, which: DependencyKind) -> list[str]:
        """Return the list selected by *which*."""
        if which is DependencyKind.REQUIRES:
            return self.requires
        return self.provides
