# src/sluice/core/logging.py
"""Logging for sluice: structlog events and stdlib records, one output stream.

Sources log page progress, classified errors and skipped files through
structlog. httpx, SQLAlchemy and openpyxl log through the stdlib; their
records are fed through the same processors by a ProcessorFormatter, so a
`--json-logs` run emits nothing but JSON lines.

Everything is written to stderr. stdout belongs to the command output, e.g.
the payload of `sluice fetch --format json`.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import ProcessorFormatter

# Library loggers held at WARNING or above, whatever level sluice runs at
_LIBRARY_LOGGERS: tuple[str, ...] = (
    "httpx",
    "httpcore",
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "openpyxl",
)

# Event keys whose values are credentials. Matched case-insensitively.
_SECRET_KEYS = frozenset({"authorization", "password", "token", "api_key", "x-api-key", "cookie", "secret"})
_REDACTED = "***"

# Keys ProcessorFormatter adds to every event dict for its own use
_FORMATTER_KEYS = ("_record", "_from_structlog")


def _mask_secrets(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Mask credential values, including those inside a logged headers dict."""
    for key, value in event_dict.items():
        if key.lower() in _SECRET_KEYS:
            event_dict[key] = _REDACTED
        elif isinstance(value, dict):
            event_dict[key] = {k: _REDACTED if str(k).lower() in _SECRET_KEYS else v for k, v in value.items()}
    return event_dict


def _strip_formatter_keys(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    for key in _FORMATTER_KEYS:
        event_dict.pop(key, None)
    return event_dict


def _render_chain(json_output: bool) -> list[Any]:
    if json_output:
        return [_strip_formatter_keys, structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [_strip_formatter_keys, structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]


def configure_logging(*, json_output: bool = False, level: str = "INFO") -> None:
    """Route structlog and stdlib logging to stderr at the given level.

    Safe to call repeatedly; the CLI calls it once from global flags and
    again after reading the settings file.

    Args:
        json_output: One JSON object per line instead of console rendering.
        level: Standard level name (DEBUG, INFO, WARNING, ERROR).
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        raise ValueError(f"Unknown log level: {level}")

    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        _mask_secrets,
    ]

    structlog.configure(
        processors=[*pre_chain, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Loggers are bound at import time; uncached they pick up reconfiguration
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ProcessorFormatter(processors=_render_chain(json_output), foreign_pre_chain=pre_chain))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    for name in _LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """structlog logger for a module; pass __name__."""
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
