"""
elfdeps -- ELF Dependency Generator
====================================

Derives package-manager dependency strings from ELF executables and
shared objects:

    - provides: the object's soname and the symbol versions it defines
    - requires: the libraries and symbol versions it needs at load time

Capabilities:
    - Soname sanity filtering and basename soname synthesis
    - ``(64bit)`` word-size and per-architecture markers
    - GNU-hash loader compatibility requirement
    - Optional program-interpreter requirement

References:
    - TIS Committee. (1995). ELF Specification.
    - Linux Standard Base Core Specification 5.0, Symbol Versioning.
"""

__version__ = "1.0.0"

from elfdeps.core.engine import DependencyEngine
from elfdeps.core.models import DependencyResult, ScanOptions

__all__ = [
    "DependencyEngine",
    "DependencyResult",
    "ScanOptions",
]
