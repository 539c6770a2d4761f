"""
elfdeps Analyzers
==================

Scanners that turn ELF structures into dependency facts, and the policy
that decorates and filters them.
"""

from elfdeps.analyzers.dynamic import scan_dynamic
from elfdeps.analyzers.header import classify, scan_header, scan_program_headers
from elfdeps.analyzers.markers import arch_marker, word_size_marker
from elfdeps.analyzers.policy import (
    add_decorated,
    finalize,
    format_dependency,
    gen_requires,
    skip_soname,
)
from elfdeps.analyzers.versions import scan_verdef, scan_verneed

__all__ = [
    "add_decorated",
    "arch_marker",
    "classify",
    "finalize",
    "format_dependency",
    "gen_requires",
    "scan_dynamic",
    "scan_header",
    "scan_program_headers",
    "scan_verdef",
    "scan_verneed",
    "skip_soname",
    "word_size_marker",
]
