# src/sluice/contracts/results.py
"""Result types returned by sources and parsers.

These are the values handed to the (external) extract-step executor.
They are created at the start of one fetch/parse call and discarded at
its end; nothing here is persisted or cached across calls.

IMPORTANT: retryable on SourceError is decided once, by the classification
helpers in sluice.plugins.sources.http. Callers read it, never recompute it.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from sluice.contracts.enums import ErrorCode, FieldType, FileFormat

Record = dict[str, Any]


@dataclass(frozen=True)
class SourceError:
    """A single classified failure from a data source."""

    code: ErrorCode
    message: str
    retryable: bool
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "code": str(self.code),
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.details:
            payload["details"] = self.details
        return payload


@dataclass(frozen=True)
class SourceMetadata:
    """Source-specific metadata. Unset fields are omitted from to_dict()."""

    filename: str | None = None
    content_type: str | None = None
    size: int | None = None
    has_more: bool | None = None
    next_cursor: str | None = None
    pages_fetched: int | None = None
    files_read: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class SourceResult:
    """Outcome of DataSource.fetch().

    records accumulates in source order across pages and is never reordered
    or deduplicated. When errors is non-empty, records still holds whatever
    was collected before the failure.
    """

    success: bool
    records: list[Record]
    total: int | None = None
    errors: list[SourceError] = field(default_factory=list)
    metadata: SourceMetadata | None = None

    @classmethod
    def build(
        cls,
        records: list[Record],
        errors: list[SourceError],
        metadata: SourceMetadata | None = None,
    ) -> SourceResult:
        """Assemble a result; success is derived from the absence of errors."""
        return cls(
            success=not errors,
            records=records,
            total=len(records),
            errors=errors,
            metadata=metadata,
        )

    @classmethod
    def failure(cls, error: SourceError, metadata: SourceMetadata | None = None) -> SourceResult:
        """Result for a fatal failure before any record was collected."""
        return cls(success=False, records=[], total=0, errors=[error], metadata=metadata)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "success": self.success,
            "records": self.records,
            "total": self.total,
        }
        if self.errors:
            payload["errors"] = [e.to_dict() for e in self.errors]
        if self.metadata is not None:
            payload["metadata"] = self.metadata.to_dict()
        return payload


@dataclass(frozen=True)
class ConnectionTestResult:
    """Outcome of DataSource.test()."""

    success: bool
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "message": self.message}


@dataclass(frozen=True)
class ParseError:
    """A parse failure.

    row is 1-based and set whenever the parser isolates rows (CSV, NDJSON,
    JSON array items). Document-level failures leave row unset.
    """

    message: str
    row: int | None = None
    field: str | None = None
    code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class ParseResult:
    """Outcome of FormatParser.parse().

    Invariant: len(records) == total_rows and every record is a dict.
    Violations are parser bugs and raise immediately.
    """

    success: bool
    format: FileFormat
    records: list[Record]
    fields: list[str]
    total_rows: int
    errors: list[ParseError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.total_rows != len(self.records):
            raise ValueError(f"ParseResult.total_rows={self.total_rows} does not match {len(self.records)} records")
        for index, record in enumerate(self.records):
            if not isinstance(record, dict):
                raise TypeError(f"ParseResult record {index} is {type(record).__name__}, expected dict")

    @classmethod
    def failed(cls, fmt: FileFormat, message: str, *, code: str | None = None) -> ParseResult:
        """Batch-level failure: no records, one unattributed error."""
        return cls(
            success=False,
            format=fmt,
            records=[],
            fields=[],
            total_rows=0,
            errors=[ParseError(message=message, code=code)],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "format": str(self.format),
            "records": self.records,
            "fields": self.fields,
            "total_rows": self.total_rows,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": self.warnings,
            "meta": self.meta,
        }


@dataclass(frozen=True)
class FieldInfo:
    """Per-field statistics computed by FileParserService.preview()."""

    key: str
    label: str
    type: FieldType
    sample_values: list[Any]
    null_count: int
    unique_count: int


@dataclass(frozen=True)
class FilePreview:
    """First rows of a file plus field analysis."""

    format: FileFormat
    fields: list[FieldInfo]
    sample_data: list[Record]
    total_rows: int
    warnings: list[str]

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["format"] = str(self.format)
        for info in payload["fields"]:
            info["type"] = str(info["type"])
        return payload
