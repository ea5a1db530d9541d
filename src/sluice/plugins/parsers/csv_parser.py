# src/sluice/plugins/parsers/csv_parser.py
"""CSV and TSV parsing with delimiter inference.

Uses csv.reader for proper multiline quoted field support. Rows are read
one at a time so a malformed row is reported against its physical line
and skipped without losing the rest of the file.

Values are strings unless coerce_values is set, in which case the same
scalar coercion as the XML parser applies.
"""

import csv
import io
from typing import Any

from sluice.contracts import FileFormat, ParseError, ParseResult, Record
from sluice.plugins.parsers.fields import coerce_scalar, extract_fields
from sluice.plugins.parsers.options import CsvParseOptions, ParseOptions
from sluice.plugins.utils import decode_content

# Candidates for auto-detection, in tie-break order
DELIMITERS: tuple[str, ...] = (",", ";", "\t", "|")

# Error codes for rows whose width differs from the header. These are
# reported but do not fail the batch.
TOO_FEW_FIELDS = "TooFewFields"
TOO_MANY_FIELDS = "TooManyFields"
_FIELD_COUNT_CODES = frozenset({TOO_FEW_FIELDS, TOO_MANY_FIELDS})


def detect_delimiter(content: str, sample_lines: int = 5) -> str:
    """Guess the delimiter from the first non-blank lines.

    A candidate qualifies when it splits every sampled line into the same
    number of columns, and more than one. The qualifying candidate with the
    most columns wins; ties go to the earlier candidate. Falls back to ",".

    Examples:
        >>> detect_delimiter("a;b;c\\n1;2;3")
        ';'
    """
    lines = [line for line in content.splitlines() if line.strip()][:sample_lines]
    if not lines:
        return ","

    best_delimiter = ","
    best_score = 0
    for delimiter in DELIMITERS:
        counts = [len(line.split(delimiter)) for line in lines]
        low, high = min(counts), max(counts)
        if low > 1 and low == high and low > best_score:
            best_score = low
            best_delimiter = delimiter
    return best_delimiter


def _header_warnings(headers: list[str]) -> list[str]:
    warnings = []
    seen: set[str] = set()
    for header in headers:
        if header in seen:
            warnings.append(f'Duplicate column header: "{header}"')
        seen.add(header)
    if any(header == "" for header in headers):
        warnings.append("One or more columns have empty headers")
    return warnings


def parse_csv(content: str | bytes, options: CsvParseOptions | None = None) -> ParseResult:
    """Parse CSV content into records keyed by header.

    Headers and values are trimmed and a leading BOM is removed. With
    header=False, options.headers names the columns, else column_1..N.
    Rows shorter than the header are padded with "" and rows longer than it
    are truncated; both are reported as row errors that leave success
    intact. A row the csv module cannot read fails the batch but later rows
    are still parsed.
    """
    options = options or CsvParseOptions()
    text = decode_content(content, options.encoding)
    delimiter = options.delimiter or detect_delimiter(text)

    if not text.strip():
        return ParseResult(
            success=True,
            format=FileFormat.CSV,
            records=[],
            fields=[],
            total_rows=0,
            warnings=["File is empty"],
            meta={"delimiter": delimiter},
        )

    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter, quotechar=options.quote_char)

    headers: list[str] | None = list(options.headers) if options.headers and not options.header else None
    header_pending = options.header
    records: list[Record] = []
    errors: list[ParseError] = []

    while options.preview is None or len(records) < options.preview:
        try:
            row = next(reader)
        except StopIteration:
            break
        except csv.Error as e:
            errors.append(ParseError(message=str(e), row=reader.line_num, code="MalformedRow"))
            continue

        values = [value.strip() for value in row]
        if options.skip_empty_lines and not any(values):
            continue

        if header_pending:
            headers = list(options.headers) if options.headers else values
            header_pending = False
            continue
        if headers is None:
            headers = [f"column_{i + 1}" for i in range(len(values))]

        if len(values) != len(headers):
            code = TOO_FEW_FIELDS if len(values) < len(headers) else TOO_MANY_FIELDS
            errors.append(
                ParseError(
                    message=f"Row has {len(values)} columns, expected {len(headers)}",
                    row=reader.line_num,
                    code=code,
                )
            )

        record: Record = {}
        for index, header in enumerate(headers):
            value: Any = values[index] if index < len(values) else ""
            record[header] = coerce_scalar(value) if options.coerce_values else value
        records.append(record)

    fields = headers if headers is not None else extract_fields(records)

    return ParseResult(
        success=all(e.code in _FIELD_COUNT_CODES for e in errors),
        format=FileFormat.CSV,
        records=records,
        fields=list(dict.fromkeys(fields)),
        total_rows=len(records),
        errors=errors,
        warnings=_header_warnings(fields),
        meta={"delimiter": delimiter},
    )


def _cell(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def generate_csv(records: list[Record], *, delimiter: str = ",", include_header: bool = True) -> str:
    """Serialize records as CSV.

    Columns are the first-seen union of keys across all records. Values that
    contain the delimiter, a quote or a line break are quoted. None becomes
    an empty cell. Returns "" for no records.
    """
    if not records:
        return ""

    headers = extract_fields(records)
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=delimiter, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    if include_header:
        writer.writerow(headers)
    for record in records:
        writer.writerow([_cell(record.get(header)) for header in headers])
    return buffer.getvalue().removesuffix("\n")


class CSVParser:
    """FormatParser for CSV/TSV."""

    format = FileFormat.CSV

    def parse(self, content: str | bytes, options: ParseOptions | None = None) -> ParseResult:
        csv_options = options.csv if options is not None else CsvParseOptions()
        return parse_csv(content, csv_options)

    def generate(self, records: list[Record], options: ParseOptions | None = None) -> str:
        csv_options = options.csv if options is not None else CsvParseOptions()
        return generate_csv(records, delimiter=csv_options.delimiter or ",", include_header=csv_options.header)
