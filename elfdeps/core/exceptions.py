"""
elfdeps Exceptions
===================

Failure taxonomy for per-object processing.  Every exception is local to
one input path: the engine converts it into a failed
:class:`~elfdeps.core.models.DependencyResult` and the batch continues.
"""

from __future__ import annotations


class ElfDepsError(Exception):
    """Base class for all elfdeps errors."""

    def __init__(self, path: str, message: str) -> None:
        # Undecodable path bytes arrive as surrogates; keep the text printable.
        text = f"{path}: {message}".encode("utf-8", "backslashreplace").decode("utf-8")
        super().__init__(text)
        self.path = path
        self.message = message


class ObjectOpenError(ElfDepsError):
    """The path does not exist or cannot be opened or stat'ed."""


class NotAnObjectError(ElfDepsError):
    """The file does not carry the ELF magic.  Skipped without failure."""


class HeaderParseError(ElfDepsError):
    """The ELF identification or file header is truncated or invalid."""
