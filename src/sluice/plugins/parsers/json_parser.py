# src/sluice/plugins/parsers/json_parser.py
"""JSON and JSON Lines (NDJSON) parsing.

parse_json() treats the document (or the value at options.path) as the
record array. parse_json_lines() parses each non-empty line independently
so one malformed line costs one row, not the batch.

NOTE: Non-standard JSON constants (NaN, Infinity, -Infinity) are rejected
at parse time. Use null for missing values.
"""

import json
from typing import Any

from sluice.contracts import FileFormat, ParseError, ParseResult, Record
from sluice.core.limits import DEFAULT_LIMITS, ExtractionLimits
from sluice.plugins.parsers.fields import extract_fields
from sluice.plugins.parsers.options import JsonParseOptions, ParseOptions
from sluice.plugins.sentinels import MISSING
from sluice.plugins.utils import decode_content, navigate_path

# Characters of content shown either side of a syntax error position
_ERROR_CONTEXT_CHARS = 20

# Lines inspected by is_json_lines()
_SNIFF_LINES = 3

_TOO_DEEP = "Invalid JSON: nesting exceeds the maximum supported depth"


def _reject_nonfinite_constant(value: str) -> None:
    """Reject NaN/Infinity, which Python's json module accepts by default.

    Passed to json.loads via parse_constant.

    Raises:
        ValueError: Always
    """
    raise ValueError(f"Non-standard JSON constant '{value}' not allowed. Use null for missing values, not NaN/Infinity.")


def _loads(text: str) -> Any:
    return json.loads(text, parse_constant=_reject_nonfinite_constant)


def _type_name(value: Any) -> str:
    """JSON-ish type name for error messages."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return type(value).__name__


def _syntax_error_message(error: json.JSONDecodeError, content: str) -> str:
    start = max(0, error.pos - _ERROR_CONTEXT_CHARS)
    context = content[start : error.pos + _ERROR_CONTEXT_CHARS]
    return f"Invalid JSON: {error.msg} at line {error.lineno} column {error.colno} near: \"...{context}...\""


def parse_json(
    content: str | bytes,
    options: JsonParseOptions | None = None,
    *,
    limits: ExtractionLimits = DEFAULT_LIMITS,
) -> ParseResult:
    """Parse a JSON document into records.

    With options.path set, the value at that path is used as the record
    array; a path that does not resolve fails the batch. A single object is
    wrapped into a one-record array with a warning. Array elements that are
    not objects are excluded; the first limits.max_item_errors of them are
    reported as row errors and the remainder as one summary warning.
    """
    options = options or JsonParseOptions()
    text = decode_content(content)

    try:
        data = _loads(text)
    except json.JSONDecodeError as e:
        return ParseResult.failed(FileFormat.JSON, _syntax_error_message(e, text), code="INVALID_JSON")
    except ValueError as e:
        return ParseResult.failed(FileFormat.JSON, str(e), code="INVALID_JSON")
    except RecursionError:
        return ParseResult.failed(FileFormat.JSON, _TOO_DEEP, code="INVALID_JSON")

    warnings: list[str] = []

    if options.path:
        data = navigate_path(data, options.path, default=MISSING, limits=limits)
        if data is MISSING:
            return ParseResult.failed(FileFormat.JSON, f'Path "{options.path}" not found in JSON', code="PATH_NOT_FOUND")

    if isinstance(data, dict):
        data = [data]
        warnings.append("JSON root is an object, wrapped in array")
    elif not isinstance(data, list):
        return ParseResult.failed(FileFormat.JSON, "JSON must be an array of objects or a single object", code="NOT_RECORDS")

    records: list[Record] = []
    errors: list[ParseError] = []
    invalid_count = 0
    for index, item in enumerate(data):
        if isinstance(item, dict):
            records.append(item)
            continue
        invalid_count += 1
        if invalid_count <= limits.max_item_errors:
            errors.append(ParseError(message=f"Item is not an object: {_type_name(item)}", row=index + 1))

    if invalid_count > limits.max_item_errors:
        warnings.append(f"{invalid_count - limits.max_item_errors} more items were not valid objects")

    return ParseResult(
        success=not errors,
        format=FileFormat.JSON,
        records=records,
        fields=extract_fields(records),
        total_rows=len(records),
        errors=errors,
        warnings=warnings,
    )


def parse_json_lines(content: str | bytes) -> ParseResult:
    """Parse NDJSON, one object per line.

    Blank lines are ignored and do not count towards row numbers. A line
    that fails to parse, or parses to anything other than an object, yields
    one error carrying its 1-based row and is skipped.
    """
    # JSON strings may hold U+2028 and other characters str.splitlines() treats as breaks
    lines = [line for line in decode_content(content).split("\n") if line.strip()]

    records: list[Record] = []
    errors: list[ParseError] = []
    for index, line in enumerate(lines):
        row = index + 1
        try:
            parsed = _loads(line)
        except ValueError as e:
            errors.append(ParseError(message=str(e), row=row))
            continue
        except RecursionError:
            errors.append(ParseError(message=_TOO_DEEP, row=row))
            continue
        if isinstance(parsed, dict):
            records.append(parsed)
        else:
            errors.append(ParseError(message="Line is not a JSON object", row=row))

    return ParseResult(
        success=not errors,
        format=FileFormat.JSON,
        records=records,
        fields=extract_fields(records),
        total_rows=len(records),
        errors=errors,
    )


def is_json_lines(content: str | bytes) -> bool:
    """Sniff whether content is NDJSON.

    Looks at the first three lines of the trimmed content. A single line is
    never NDJSON. Each inspected non-empty line must parse as a JSON object.
    """
    lines = decode_content(content).strip().split("\n")[:_SNIFF_LINES]
    if len(lines) <= 1:
        return False

    for line in lines:
        trimmed = line.strip()
        if not trimmed:
            continue
        try:
            parsed = _loads(trimmed)
        except (ValueError, RecursionError):
            return False
        if not isinstance(parsed, dict):
            return False
    return True


def generate_json(records: list[Record], *, pretty: bool = False, indent: int = 2) -> str:
    """Serialize records as a JSON array."""
    return json.dumps(records, indent=indent if pretty else None, ensure_ascii=False, allow_nan=False, default=str)


def generate_json_lines(records: list[Record]) -> str:
    """Serialize records as NDJSON, one object per line."""
    return "\n".join(json.dumps(record, ensure_ascii=False, allow_nan=False, default=str) for record in records)


class JSONParser:
    """FormatParser for JSON and NDJSON.

    parse() routes NDJSON-looking content through parse_json_lines() unless
    a path is configured, since a path only makes sense for one document.
    """

    format = FileFormat.JSON

    def __init__(self, *, limits: ExtractionLimits = DEFAULT_LIMITS) -> None:
        self._limits = limits

    def parse(self, content: str | bytes, options: ParseOptions | None = None) -> ParseResult:
        json_options = options.json_options if options is not None else JsonParseOptions()
        if not json_options.path and is_json_lines(content):
            return parse_json_lines(content)
        return parse_json(content, json_options, limits=self._limits)

    def generate(self, records: list[Record], options: ParseOptions | None = None) -> str:
        return generate_json(records, pretty=True)
