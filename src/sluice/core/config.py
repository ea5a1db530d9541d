# src/sluice/core/config.py
"""
Run settings for the sluice CLI.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction. The source options
block is validated later, by the selected source's own config model.
"""

import os
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from sluice.contracts.enums import SourceType


class SourceSettings(BaseModel):
    """Which source variant to run and its options."""

    model_config = {"frozen": True}

    type: SourceType = Field(description="Source variant (rest_api, graphql_api, local_file, ...)")
    options: dict[str, Any] = Field(
        default_factory=dict,
        description="Source-specific configuration options",
    )


class LoggingSettings(BaseModel):
    """Logging output configuration."""

    model_config = {"frozen": True}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_output: bool = False

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.upper()
        return v


class SluiceSettings(BaseModel):
    """Top-level settings file."""

    model_config = {"frozen": True, "extra": "forbid"}

    source: SourceSettings
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# Regex pattern for ${VAR} or ${VAR:-default} syntax
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values.

    A reference with no matching variable and no default is left as-is.
    """

    def _expand_string(value: str) -> str:
        def replacer(match: re.Match[str]) -> str:
            env_value = os.environ.get(match.group(1))
            if env_value is not None:
                return env_value
            default = match.group(2)
            if default is not None:
                return default
            return match.group(0)

        return _ENV_VAR_PATTERN.sub(replacer, value)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _expand_string(value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def load_settings(config_path: Path) -> SluiceSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (SLUICE_*) - highest priority
    2. Config file (settings.yaml)
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: SLUICE_SOURCE__OPTIONS__TIMEOUT for nested keys.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated SluiceSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="SLUICE",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase top-level keys; Pydantic wants the YAML names
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}

    raw_config = _expand_env_vars(raw_config)

    return SluiceSettings(**raw_config)


# Secret field names that are redacted in resolved config (exact matches)
_SECRET_FIELD_NAMES = frozenset({"api_key", "token", "password", "secret", "credential", "authorization"})

# Secret field suffixes that are redacted
_SECRET_FIELD_SUFFIXES = ("_secret", "_key", "_token", "_password", "_credential")

REDACTED = "***"


def _is_secret_field(field_name: str) -> bool:
    """Check if a field name represents a secret."""
    lowered = field_name.lower()
    return lowered in _SECRET_FIELD_NAMES or lowered.endswith(_SECRET_FIELD_SUFFIXES)


def _redact_secrets(value: Any, parent: str | None = None) -> Any:
    """Recursively replace secret fields with REDACTED, walking dicts and lists.

    Inside an "auth" block the api key "value" is a secret too.
    """
    if isinstance(value, dict):
        redacted = {}
        for k, v in value.items():
            key = str(k)
            is_secret = _is_secret_field(key) or (parent == "auth" and key.lower() == "value")
            redacted[k] = REDACTED if is_secret and v is not None else _redact_secrets(v, key.lower())
        return redacted
    if isinstance(value, list):
        return [_redact_secrets(item, parent) for item in value]
    return value


def resolve_config(settings: SluiceSettings) -> dict[str, Any]:
    """Convert validated settings to a dict safe for display.

    Secrets in source options (tokens, passwords, api keys, auth headers)
    are redacted. The settings object itself is untouched.
    """
    return _redact_secrets(settings.model_dump(mode="json"))
