# src/sluice/plugins/config_base.py
"""Base classes for typed source and parser configurations.

This module provides base classes that configs inherit from to get:
- Strict validation (reject unknown fields)
- Immutability after construction
- Factory methods with clear error messages

Example usage:
    class LocalFileSourceConfig(PathConfig):
        pattern: str | None = None
        encoding: str = "utf-8"

    cfg = LocalFileSourceConfig.from_dict(config)
    path = cfg.path  # Direct access, fails fast if missing
"""

from pathlib import Path
from typing import Any, Self

from pydantic import BaseModel, ValidationError, field_validator


class PluginConfigError(Exception):
    """Raised when a source or parser configuration is invalid."""

    pass


class PluginConfig(BaseModel):
    """Base class for typed configurations.

    Configs are constructed once per fetch/parse invocation and never
    mutated afterwards.
    """

    model_config = {"extra": "forbid", "frozen": True}

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> Self:
        """Create config from dict with clear error on validation failure.

        Args:
            config: Dictionary of configuration values.

        Returns:
            Validated configuration instance.

        Raises:
            PluginConfigError: If configuration is invalid.
        """
        if not isinstance(config, dict):
            raise PluginConfigError(f"Invalid configuration for {cls.__name__}: config must be a dict, got {type(config).__name__}.")

        try:
            return cls.model_validate(config)
        except ValidationError as e:
            raise PluginConfigError(f"Invalid configuration for {cls.__name__}: {e}") from e

    @classmethod
    def coerce(cls, config: "Self | dict[str, Any]") -> Self:
        """Accept either an already-validated config or a raw dict."""
        if isinstance(config, cls):
            return config
        return cls.from_dict(config)  # type: ignore[arg-type]


class PathConfig(PluginConfig):
    """Base for configs that point at a filesystem path."""

    path: str

    @field_validator("path")
    @classmethod
    def validate_path_not_empty(cls, v: str) -> str:
        """Validate that path is not empty or whitespace-only."""
        if not v or not v.strip():
            raise ValueError("path cannot be empty")
        return v

    def resolved_path(self, base_dir: Path | None = None) -> Path:
        """Resolve path relative to base directory if provided.

        Args:
            base_dir: Base directory for relative path resolution.
                     If None, path is returned as-is (with ~ expanded).

        Returns:
            Resolved Path object.
        """
        p = Path(self.path).expanduser()
        if base_dir and not p.is_absolute():
            return base_dir / p
        return p
