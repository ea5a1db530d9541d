# src/sluice/plugins/sources/base.py
"""Base class for data source implementations.

Sources MUST subclass BaseSource. The registry (PluginManager) checks
issubclass() against it and keys registrations by source_type.

Contract:
    fetch(config) -> SourceResult        never raises for expected failures
    test(config)  -> ConnectionTestResult
    describe(config) -> {"fields", "metadata", "success", "errors"}

config is either an instance of the source's config_model or a plain dict,
which is validated via config_model.from_dict() and raises
PluginConfigError when invalid. Configuration errors are programmer errors
and are not folded into SourceResult.

Sources hold no per-call state on self. Loop counters, cursors and HTTP
clients are locals of fetch(), so one instance is safe to share.
"""

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, TypeVar

from sluice.contracts import (
    ConnectionTestResult,
    ErrorCode,
    ParseError,
    Record,
    SourceError,
    SourceResult,
    SourceType,
)
from sluice.core.logging import get_logger
from sluice.plugins.config_base import PluginConfig
from sluice.plugins.parsers.fields import extract_fields

logger = get_logger(__name__)

ConfigT = TypeVar("ConfigT", bound=PluginConfig)


def coerce_records(value: Any) -> list[Record]:
    """Normalize an extracted value into a record list.

    A list keeps its object elements, a single object becomes a one-element
    list, and anything else (scalar, None, missing) yields no records.
    """
    if isinstance(value, dict):
        return [value]
    if isinstance(value, list):
        records = [item for item in value if isinstance(item, dict)]
        if len(records) != len(value):
            logger.debug("Dropped non-object items", dropped=len(value) - len(records))
        return records
    return []


def parse_error_to_source_error(error: ParseError, filename: str | None = None) -> SourceError:
    """Map a parser's row-level error into a PARSE_ERROR SourceError."""
    details: dict[str, Any] = {"row": error.row, "field": error.field}
    if error.code is not None:
        details["code"] = error.code
    if filename is not None:
        details["file"] = filename
    return SourceError(code=ErrorCode.PARSE_ERROR, message=error.message, retryable=False, details=details)


class BaseSource(ABC, Generic[ConfigT]):
    """Base class for data sources.

    Subclass and implement fetch() and test().

    Example:
        class SqlDatabaseSource(BaseSource[SqlDatabaseSourceConfig]):
            source_type = SourceType.SQL_DATABASE
            config_model = SqlDatabaseSourceConfig

            def fetch(self, config):
                cfg = self.coerce_config(config)
                ...
    """

    source_type: ClassVar[SourceType]
    config_model: ClassVar[type[PluginConfig]]
    # File sources take a FileParserService as parser_service
    parses_files: ClassVar[bool] = False

    def coerce_config(self, config: ConfigT | dict[str, Any]) -> ConfigT:
        """Validate a raw dict into config_model, or pass a model through.

        Raises:
            PluginConfigError: If a dict config is invalid.
        """
        return self.config_model.coerce(config)  # type: ignore[return-value]

    @abstractmethod
    def fetch(self, config: ConfigT | dict[str, Any]) -> SourceResult:
        """Retrieve every record described by config."""
        ...

    @abstractmethod
    def test(self, config: ConfigT | dict[str, Any]) -> ConnectionTestResult:
        """Check the source is reachable without a full fetch."""
        ...

    def describe(self, config: ConfigT | dict[str, Any]) -> dict[str, Any]:
        """Run fetch() and report the discovered fields and metadata."""
        result = self.fetch(config)
        return {
            "success": result.success,
            "fields": extract_fields(result.records),
            "total": result.total,
            "metadata": result.metadata.to_dict() if result.metadata is not None else {},
            "errors": [e.to_dict() for e in result.errors],
        }
