"""Closed variant sets used across the extraction layer.

Every source type, file format, pagination strategy and error code is a
member of one of these enums. String dispatch anywhere else is a bug.
"""

from enum import StrEnum


class SourceType(StrEnum):
    """Data source variant.

    Used as the registry key in PluginManager.
    """

    REST_API = "rest_api"
    GRAPHQL_API = "graphql_api"
    LOCAL_FILE = "local_file"
    REMOTE_FILE = "remote_file"
    SQL_DATABASE = "sql_database"


class FileFormat(StrEnum):
    """Format handled by a FormatParser."""

    CSV = "csv"
    JSON = "json"
    XML = "xml"
    XLSX = "xlsx"


class PaginationStrategy(StrEnum):
    """REST pagination strategies."""

    OFFSET = "offset"
    CURSOR = "cursor"
    PAGE = "page"
    LINK = "link"


class GraphQLPaginationStyle(StrEnum):
    """GraphQL pagination styles."""

    RELAY = "relay"
    CURSOR = "cursor"
    OFFSET = "offset"


class AuthType(StrEnum):
    """Authentication schemes understood by build_auth_headers()."""

    BASIC = "basic"
    BEARER = "bearer"
    API_KEY = "api_key"


class ErrorCode(StrEnum):
    """Error codes surfaced in SourceResult.errors.

    Connectivity (FETCH_ERROR, TIMEOUT) is always retryable.
    Protocol (HTTP_ERROR, GRAPHQL_ERROR) is retryable only for a fixed status class.
    Content (PARSE_ERROR) is never retryable.
    """

    HTTP_ERROR = "HTTP_ERROR"
    FETCH_ERROR = "FETCH_ERROR"
    TIMEOUT = "TIMEOUT"
    GRAPHQL_ERROR = "GRAPHQL_ERROR"
    FILE_READ_ERROR = "FILE_READ_ERROR"
    FILE_ACCESS_ERROR = "FILE_ACCESS_ERROR"
    PARSE_ERROR = "PARSE_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"


class ExcelErrorKind(StrEnum):
    """The three distinct ways an Excel parse can fail."""

    DEPENDENCY_MISSING = "dependency_missing"
    CORRUPT_FILE = "corrupt_file"
    SHEET_NOT_FOUND = "sheet_not_found"


class FieldType(StrEnum):
    """Value type detected for a field during preview analysis."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    ARRAY = "array"
    OBJECT = "object"
    NULL = "null"
    MIXED = "mixed"
