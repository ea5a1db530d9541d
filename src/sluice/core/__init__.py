# src/sluice/core/__init__.py
"""Core infrastructure: Configuration, Limits, Logging."""

from sluice.core.config import (
    LoggingSettings,
    SluiceSettings,
    SourceSettings,
    load_settings,
    resolve_config,
)
from sluice.core.limits import DEFAULT_LIMITS, ExtractionLimits
from sluice.core.logging import configure_logging, get_logger

__all__ = [
    "DEFAULT_LIMITS",
    "ExtractionLimits",
    "LoggingSettings",
    "SluiceSettings",
    "SourceSettings",
    "configure_logging",
    "get_logger",
    "load_settings",
    "resolve_config",
]
