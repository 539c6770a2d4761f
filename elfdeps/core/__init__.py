"""
elfdeps Core Module
====================

Data models, exceptions, and the extraction engine.
"""

from elfdeps.core.exceptions import (
    ElfDepsError,
    HeaderParseError,
    NotAnObjectError,
    ObjectOpenError,
)
from elfdeps.core.models import (
    DependencyKind,
    DependencyResult,
    ObjectContext,
    ObjectKind,
    ScanOptions,
)

__all__ = [
    "DependencyKind",
    "DependencyResult",
    "ElfDepsError",
    "HeaderParseError",
    "NotAnObjectError",
    "ObjectContext",
    "ObjectKind",
    "ObjectOpenError",
    "ScanOptions",
]
