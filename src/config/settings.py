# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Process-wide knobs: manifest location, naming prefix, bundle verification
and logging. Per-deployment choices (function sizing, feature toggles)
travel in api.models.TopologyOverrides instead.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from opennext_topology.config.defaults import DEFAULT_PREFIX, PREFIX_PATTERN

_PREFIX_RE = re.compile(PREFIX_PATTERN)
_SIZE_RE = re.compile(r"^\d+\s*(B|KB|MB|GB)$", re.IGNORECASE)


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file and OPENNEXT_* variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="OPENNEXT_",
        extra="ignore",
    )

    # === Manifest ===
    manifest_filename: str = "open-next.output.json"
    build_root_prefix: str = ".open-next/"
    build_command: str = "npx @opennextjs/aws build"
    verify_bundles: bool = False

    # === Naming ===
    default_prefix: str = DEFAULT_PREFIX

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("default_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        """Prefix becomes part of every physical name, keep it DNS-safe."""
        if not _PREFIX_RE.match(v):
            raise ValueError(
                "default_prefix must be lowercase alphanumerics and dashes"
            )
        return v

    @field_validator("log_retention")
    @classmethod
    def validate_log_retention(cls, v: int) -> int:
        if v < 0:
            raise ValueError("log_retention must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if not self.build_root_prefix.endswith("/"):
            errors.append("BUILD_ROOT_PREFIX must end with '/'")

        if not self.manifest_filename.endswith(".json"):
            errors.append("MANIFEST_FILENAME must name a .json file")

        if self.log_file is not None and not _SIZE_RE.match(self.log_rotation.strip()):
            errors.append(f"LOG_ROTATION {self.log_rotation!r} is not a size like '10MB'")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-build config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
