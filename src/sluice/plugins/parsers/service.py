# src/sluice/plugins/parsers/service.py
"""Format detection and dispatch over the registered parsers.

FileParserService is what file sources and the CLI call. It picks a
FileFormat (explicit option, then filename extension, then content
sniffing) and hands the content to the parser registered for it.
"""

import re
from collections.abc import Mapping
from datetime import date, datetime
from pathlib import PurePosixPath
from typing import Any

from sluice.contracts import FieldInfo, FieldType, FilePreview, FileFormat, ParseResult, Record
from sluice.core.limits import DEFAULT_LIMITS, ExtractionLimits
from sluice.core.logging import get_logger
from sluice.plugins.parsers.csv_parser import CSVParser
from sluice.plugins.parsers.excel_parser import ExcelParser, is_excel_file
from sluice.plugins.parsers.fields import is_number_text
from sluice.plugins.parsers.json_parser import JSONParser
from sluice.plugins.parsers.options import ParseOptions
from sluice.plugins.parsers.xml_parser import XMLParser
from sluice.plugins.protocols import FormatParserProtocol

logger = get_logger(__name__)

FORMAT_EXTENSIONS: dict[FileFormat, tuple[str, ...]] = {
    FileFormat.CSV: ("csv", "tsv"),
    FileFormat.JSON: ("json", "jsonl", "ndjson"),
    FileFormat.XML: ("xml",),
    FileFormat.XLSX: ("xlsx", "xls"),
}

# Bytes of binary content decoded for text sniffing
_SNIFF_BYTES = 1000

DEFAULT_PREVIEW_ROWS = 10
SAMPLE_VALUES_LIMIT = 5
MAX_UNIQUE_VALUES = 1000

_ISO_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
_CAMEL_BOUNDARY = re.compile(r"([a-z])([A-Z])")


def format_from_filename(filename: str | None) -> FileFormat | None:
    """FileFormat for a filename's extension, or None if unknown."""
    if not filename:
        return None
    extension = PurePosixPath(filename).suffix.lower().lstrip(".")
    for fmt, extensions in FORMAT_EXTENSIONS.items():
        if extension in extensions:
            return fmt
    return None


def default_parsers(limits: ExtractionLimits = DEFAULT_LIMITS) -> dict[FileFormat, FormatParserProtocol]:
    """One instance of each built-in parser, keyed by format."""
    parsers: list[FormatParserProtocol] = [CSVParser(), JSONParser(limits=limits), XMLParser(limits=limits), ExcelParser()]
    return {parser.format: parser for parser in parsers}


class FileParserService:
    """Detects file formats and routes content to the matching parser."""

    def __init__(self, parsers: Mapping[FileFormat, FormatParserProtocol] | None = None) -> None:
        self._parsers: dict[FileFormat, FormatParserProtocol] = dict(parsers) if parsers is not None else default_parsers()

    def detect_format(self, content: str | bytes, filename: str | None = None) -> FileFormat:
        """Guess the format: extension, then Excel magic bytes, then the first character.

        "{" or "[" means JSON, "<" means XML, anything else is CSV.
        """
        from_extension = format_from_filename(filename)
        if from_extension is not None:
            return from_extension

        if isinstance(content, bytes):
            if is_excel_file(content):
                return FileFormat.XLSX
            content = content[:_SNIFF_BYTES].decode("utf-8", errors="ignore")

        trimmed = content.lstrip("\ufeff").strip()
        if trimmed.startswith(("{", "[")):
            return FileFormat.JSON
        if trimmed.startswith("<"):
            return FileFormat.XML
        return FileFormat.CSV

    def parser_for(self, fmt: FileFormat) -> FormatParserProtocol:
        try:
            return self._parsers[fmt]
        except KeyError:
            raise ValueError(f"No parser registered for format: {fmt}") from None

    def parse(self, content: str | bytes, options: ParseOptions | None = None, *, filename: str | None = None) -> ParseResult:
        """Parse content with the explicit format, or a detected one.

        JSON content is routed to NDJSON parsing when it looks line-delimited.
        """
        options = options or ParseOptions()
        fmt = options.format or self.detect_format(content, filename)
        parser = self.parser_for(fmt)
        logger.debug("Parsing content", format=str(fmt), filename=filename)
        try:
            return parser.parse(content, options)
        except Exception as e:
            logger.warning("Parser raised unexpectedly", format=str(fmt), filename=filename, error_type=type(e).__name__)
            return ParseResult.failed(fmt, f"Failed to parse {filename or 'content'}: {type(e).__name__}: {e}", code="PARSE_FAILED")

    def preview(
        self,
        content: str | bytes,
        options: ParseOptions | None = None,
        max_rows: int = DEFAULT_PREVIEW_ROWS,
        *,
        filename: str | None = None,
    ) -> FilePreview:
        """First max_rows records plus per-field type analysis.

        CSV parsing stops after max_rows; other formats are parsed fully and
        truncated, so total_rows reflects the whole document for them.
        """
        options = options or ParseOptions()
        options = options.model_copy(update={"csv": options.csv.model_copy(update={"preview": max_rows})})
        result = self.parse(content, options, filename=filename)

        return FilePreview(
            format=result.format,
            fields=analyze_fields(result.records, result.fields),
            sample_data=result.records[:max_rows],
            total_rows=result.total_rows,
            warnings=list(result.warnings) + [e.message for e in result.errors],
        )


def detect_value_type(value: Any) -> FieldType:
    """Classify one non-empty value for preview."""
    if value is None:
        return FieldType.NULL
    if isinstance(value, list):
        return FieldType.ARRAY
    if isinstance(value, bool):
        return FieldType.BOOLEAN
    if isinstance(value, (int, float)):
        return FieldType.NUMBER
    if isinstance(value, (date, datetime)):
        return FieldType.DATE
    if isinstance(value, dict):
        return FieldType.OBJECT
    if isinstance(value, str):
        if _ISO_DATE_PREFIX.match(value):
            try:
                date.fromisoformat(value[:10])
            except ValueError:
                pass
            else:
                return FieldType.DATE
        if is_number_text(value):
            return FieldType.NUMBER
    return FieldType.STRING


def humanize_field_name(name: str) -> str:
    """snake_case or camelCase key to a display label: "unitPrice" -> "Unit Price"."""
    label = _CAMEL_BOUNDARY.sub(r"\1 \2", name.replace("_", " "))
    return label[:1].upper() + label[1:]


def _hashable(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return repr(value)
    return value


def analyze_fields(records: list[Record], field_names: list[str]) -> list[FieldInfo]:
    """Per-field type, null count, samples and bounded unique count.

    None, missing and "" count as null. A field whose non-null values have
    more than one type is "mixed"; one with no non-null values is "null".
    """
    infos = []
    for name in field_names:
        types: set[FieldType] = set()
        samples: list[Any] = []
        uniques: set[Any] = set()
        null_count = 0
        for record in records:
            value = record.get(name)
            if value is None or value == "":
                null_count += 1
                continue
            types.add(detect_value_type(value))
            if len(samples) < SAMPLE_VALUES_LIMIT:
                samples.append(value)
            if len(uniques) < MAX_UNIQUE_VALUES:
                uniques.add(_hashable(value))

        if not types:
            field_type = FieldType.NULL
        elif len(types) == 1:
            field_type = next(iter(types))
        else:
            field_type = FieldType.MIXED

        infos.append(
            FieldInfo(
                key=name,
                label=humanize_field_name(name),
                type=field_type,
                sample_values=samples,
                null_count=null_count,
                unique_count=len(uniques),
            )
        )
    return infos
