"""
elfdeps Parsers
================

Struct-based ELF structural reader.
"""

from elfdeps.parsers.elf_parser import ELFParser

__all__ = ["ELFParser"]
