"""Shared contracts: variant enums and result types.

Everything that crosses a module boundary is defined here so sources,
parsers and the CLI agree on one vocabulary.
"""

from sluice.contracts.enums import (
    AuthType,
    ErrorCode,
    ExcelErrorKind,
    FieldType,
    FileFormat,
    GraphQLPaginationStyle,
    PaginationStrategy,
    SourceType,
)
from sluice.contracts.results import (
    ConnectionTestResult,
    FieldInfo,
    FilePreview,
    ParseError,
    ParseResult,
    Record,
    SourceError,
    SourceMetadata,
    SourceResult,
)

__all__ = [
    # Enums
    "AuthType",
    "ErrorCode",
    "ExcelErrorKind",
    "FieldType",
    "FileFormat",
    "GraphQLPaginationStyle",
    "PaginationStrategy",
    "SourceType",
    # Results
    "ConnectionTestResult",
    "FieldInfo",
    "FilePreview",
    "ParseError",
    "ParseResult",
    "Record",
    "SourceError",
    "SourceMetadata",
    "SourceResult",
]
