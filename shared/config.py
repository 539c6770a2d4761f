"""
Toolkit Configuration Management
=================================

Centralized configuration for the elfdeps dependency generator using
Python dataclasses and TOML-based persistence.

Configuration is layered: dataclass defaults, then an optional TOML file,
then command-line overrides applied by the CLI.  Only the first two
layers live here.

Example ``elfdeps.toml``::

    [global]
    log_level = "DEBUG"
    log_file = "elfdeps.log"
    log_json = true

    [elfdeps]
    add_arch = true
    filter_soname = false

References:
    - Wiggins, A. (2011). The Twelve-Factor App. https://12factor.net/
    - TOML v1.0.0 Specification. https://toml.io/en/v1.0.0
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


# ---------------------------------------------------------------------------
# Default configuration file path relative to the project root
# ---------------------------------------------------------------------------
_DEFAULT_CONFIG_PATH: Path = Path(__file__).resolve().parent.parent / "elfdeps.toml"


# ========================== Tool-Specific Configs ==========================


@dataclass(frozen=False, slots=True)
class ElfDepsConfig:
    """Default dependency-generation switches.

    Each field mirrors one command-line flag.  The CLI only overrides a
    field when the corresponding flag is actually given.
    """

    soname_only: bool = False
    fake_soname: bool = True
    filter_soname: bool = True
    require_interp: bool = False
    add_arch: bool = False
    add_word_size: bool = True


# =========================== Global Settings ===============================


@dataclass(frozen=False, slots=True)
class GlobalConfig:
    """Logging and diagnostics settings."""

    log_level: str = "WARNING"
    log_file: str = ""
    log_json: bool = False
    debug: bool = False


# =========================== Master Config =================================


@dataclass(frozen=False, slots=True)
class ToolkitConfig:
    """Master configuration aggregating global and tool-specific settings.

    Usage:
        >>> config = ToolkitConfig.load()                  # from default path
        >>> config = ToolkitConfig.load("custom.toml")     # from custom path
        >>> config.elfdeps.filter_soname
        True
    """

    global_settings: GlobalConfig = field(default_factory=GlobalConfig)
    elfdeps: ElfDepsConfig = field(default_factory=ElfDepsConfig)

    # ------------------------------------------------------------------ #
    #  TOML Loading
    # ------------------------------------------------------------------ #

    @classmethod
    def load(cls, path: str | Path | None = None) -> ToolkitConfig:
        """Load configuration from a TOML file.

        If *path* is ``None`` the loader looks for ``elfdeps.toml`` in the
        project root.  Missing keys fall back to dataclass defaults.

        Args:
            path: Filesystem path to a TOML configuration file.

        Returns:
            A fully-populated :class:`ToolkitConfig` instance.

        Raises:
            FileNotFoundError: If the specified path does not exist
                *and* was explicitly provided by the caller.
            tomllib.TOMLDecodeError: If the file is not valid TOML.
            ValueError: If a section is not a table or a value has the
                wrong type.
        """
        config_path = Path(path) if path is not None else _DEFAULT_CONFIG_PATH

        if not config_path.exists():
            if path is not None:
                raise FileNotFoundError(
                    f"Configuration file not found: {config_path}"
                )
            return cls()

        with open(config_path, "rb") as fh:
            raw: dict[str, Any] = tomllib.load(fh)

        return cls(
            global_settings=cls._build_section(GlobalConfig, raw.get("global", {})),
            elfdeps=cls._build_section(ElfDepsConfig, raw.get("elfdeps", {})),
        )

    # ------------------------------------------------------------------ #
    #  Serialisation helpers
    # ------------------------------------------------------------------ #

    def to_dict(self) -> dict[str, Any]:
        """Serialise the entire configuration tree to a plain dictionary."""
        return asdict(self)

    # ------------------------------------------------------------------ #
    #  Internal helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _build_section(cls: type, data: Any) -> Any:
        """Instantiate a dataclass *cls* using only the keys it declares.

        Unknown keys in the TOML source are ignored.  Each known value must
        have the same type as the field default; ``bool`` and ``int`` are
        not interchangeable.
        """
        if not isinstance(data, dict):
            raise ValueError(f"{cls.__name__}: section must be a table")
        defaults = {f.name: f.default for f in fields(cls)}
        filtered: dict[str, Any] = {}
        for key, value in data.items():
            if key not in defaults:
                continue
            expected = type(defaults[key])
            if type(value) is not expected:
                raise ValueError(
                    f"{key}: expected {expected.__name__}, got {type(value).__name__}"
                )
            filtered[key] = value
        return cls(**filtered)
