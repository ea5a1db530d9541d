# src/sluice/plugins/parsers/excel_parser.py
"""Excel workbook parsing via the optional openpyxl dependency.

openpyxl is installed with the ``excel`` extra (pip install 'sluice[excel]').
It is imported on first use so the rest of the package works without it.
Failures are reported as one of three ExcelErrorKind codes:

- dependency_missing: openpyxl is not installed
- corrupt_file: the bytes are not a readable workbook (legacy BIFF .xls
  files land here too, openpyxl reads only the OOXML formats)
- sheet_not_found: a sheet was requested by name and does not exist
"""

import io
import re
import zipfile
from datetime import date, datetime, time
from typing import Any

from sluice.contracts import ExcelErrorKind, FileFormat, ParseError, ParseResult, Record
from sluice.core.logging import get_logger
from sluice.plugins.parsers.fields import extract_fields
from sluice.plugins.parsers.options import ParseOptions, XlsxParseOptions

logger = get_logger(__name__)

_ZIP_MAGIC = b"PK\x03\x04"
_BIFF_MAGIC = b"\xd0\xcf\x11\xe0"
_CELL_REF = re.compile(r"^([A-Z]+)(\d+)$", re.IGNORECASE)

DEPENDENCY_MESSAGE = "Excel parsing requires openpyxl. Install with: pip install 'sluice[excel]'"

# Raised by openpyxl and zipfile for damaged workbooks. Malformed XML parts surface as
# xml.etree.ElementTree.ParseError (or lxml XMLSyntaxError), both SyntaxError subclasses.
_CORRUPT_ERRORS: tuple[type[Exception], ...] = (zipfile.BadZipFile, KeyError, OSError, ValueError, EOFError, SyntaxError)


class WorkbookError(Exception):
    """A workbook could not be opened or read."""

    def __init__(self, kind: ExcelErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


def _load_workbook(content: bytes, *, read_only: bool = True) -> Any:
    try:
        from openpyxl import load_workbook
        from openpyxl.utils.exceptions import InvalidFileException
    except ImportError as e:
        raise WorkbookError(ExcelErrorKind.DEPENDENCY_MISSING, DEPENDENCY_MESSAGE) from e

    try:
        return load_workbook(io.BytesIO(content), read_only=read_only, data_only=True)
    except (InvalidFileException, *_CORRUPT_ERRORS) as e:
        raise WorkbookError(ExcelErrorKind.CORRUPT_FILE, f"Failed to read Excel file: {e}") from e


def parse_cell_ref(ref: str) -> tuple[int, int] | None:
    """Convert "BC12" into 0-based (row, col), or None if malformed."""
    match = _CELL_REF.match(ref.strip())
    if match is None:
        return None
    col = 0
    for char in match.group(1).upper():
        col = col * 26 + (ord(char) - 64)
    row = int(match.group(2)) - 1
    if row < 0:
        return None
    return row, col - 1


def to_cell_ref(row: int, col: int) -> str:
    """Convert 0-based (row, col) into an A1-style reference."""
    letters = ""
    index = col + 1
    while index > 0:
        index, remainder = divmod(index - 1, 26)
        letters = chr(65 + remainder) + letters
    return f"{letters}{row + 1}"


def parse_range(cell_range: str) -> tuple[tuple[int, int], tuple[int, int]] | None:
    """Convert "A1:Z100" into 0-based ((row, col), (row, col)), or None if malformed."""
    start, sep, end = cell_range.partition(":")
    if not sep:
        return None
    start_cell = parse_cell_ref(start)
    end_cell = parse_cell_ref(end)
    if start_cell is None or end_cell is None:
        return None
    return start_cell, end_cell


def is_excel_file(content: bytes) -> bool:
    """Sniff XLSX (zip) or legacy XLS (OLE2) magic bytes."""
    return content[:4] in (_ZIP_MAGIC, _BIFF_MAGIC)


def _normalize_cell(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return value


def _header_names(row: tuple[Any, ...]) -> list[str]:
    """Header cells as unique strings. Blank headers become column_N."""
    names: list[str] = []
    seen: dict[str, int] = {}
    for index, cell in enumerate(row):
        name = str(cell).strip() if cell is not None and str(cell).strip() else f"column_{index + 1}"
        if name in seen:
            seen[name] += 1
            name = f"{name}_{seen[name]}"
        else:
            seen[name] = 0
        names.append(name)
    return names


def _failure(kind: ExcelErrorKind, message: str, meta: dict[str, Any] | None = None) -> ParseResult:
    return ParseResult(
        success=False,
        format=FileFormat.XLSX,
        records=[],
        fields=[],
        total_rows=0,
        errors=[ParseError(message=message, code=str(kind))],
        meta=meta or {},
    )


def parse_excel(content: bytes, options: XlsxParseOptions | None = None) -> ParseResult:
    """Parse one worksheet into records.

    The sheet is chosen by 0-based index (out of range falls back to the
    first sheet) or by name. With header=True the first row of the range
    supplies keys; otherwise keys are column letters (A, B, ...). Missing
    cells are None and fully blank rows are skipped. Dates and times are
    returned as ISO strings.
    """
    options = options or XlsxParseOptions()

    bounds = None
    if options.range:
        bounds = parse_range(options.range)
        if bounds is None:
            return ParseResult.failed(FileFormat.XLSX, f'Invalid cell range: "{options.range}"', code="INVALID_RANGE")

    try:
        workbook = _load_workbook(content)
    except WorkbookError as e:
        return _failure(e.kind, str(e))

    try:
        sheet_names: list[str] = list(workbook.sheetnames)
        if not sheet_names:
            return _failure(ExcelErrorKind.CORRUPT_FILE, "No sheets found in workbook")

        if isinstance(options.sheet, int):
            sheet_name = sheet_names[options.sheet] if 0 <= options.sheet < len(sheet_names) else sheet_names[0]
        elif isinstance(options.sheet, str):
            sheet_name = options.sheet
        else:
            sheet_name = sheet_names[0]

        if sheet_name not in sheet_names:
            return _failure(
                ExcelErrorKind.SHEET_NOT_FOUND,
                f'Sheet "{sheet_name}" not found. Available: {", ".join(sheet_names)}',
                meta={"available_sheets": sheet_names},
            )

        worksheet = workbook[sheet_name]
        if bounds is not None:
            (min_row, min_col), (max_row, max_col) = bounds
            rows = worksheet.iter_rows(
                min_row=min_row + 1,
                max_row=max_row + 1,
                min_col=min_col + 1,
                max_col=max_col + 1,
                values_only=True,
            )
            first_col = min_col
        else:
            rows = worksheet.iter_rows(values_only=True)
            first_col = 0

        records: list[Record] = []
        keys: list[str] | None = None
        for row in rows:
            if keys is None and options.header:
                keys = _header_names(row)
                continue
            if all(cell is None or cell == "" for cell in row):
                continue
            if keys is None or len(keys) < len(row):
                keys = _column_keys(keys, row, first_col, options.header)
            records.append({keys[i]: _normalize_cell(row[i]) if i < len(row) else None for i in range(len(keys))})
    except _CORRUPT_ERRORS as e:
        return _failure(ExcelErrorKind.CORRUPT_FILE, f"Failed to read Excel file: {e}")
    finally:
        workbook.close()

    warnings = []
    if len(sheet_names) > 1:
        warnings.append(f'Workbook has {len(sheet_names)} sheets. Parsed: "{sheet_name}"')
        warnings.append(f"Available sheets: {', '.join(sheet_names)}")

    logger.debug("Parsed worksheet", sheet=sheet_name, rows=len(records))

    return ParseResult(
        success=True,
        format=FileFormat.XLSX,
        records=records,
        fields=extract_fields(records) or (keys or []),
        total_rows=len(records),
        warnings=warnings,
        meta={"sheet_name": sheet_name, "available_sheets": sheet_names},
    )


def _column_keys(keys: list[str] | None, row: tuple[Any, ...], first_col: int, header: bool) -> list[str]:
    """Extend keys so every cell of row has one.

    Headerless sheets use column letters. Cells past a header row's width
    get column_N names.
    """
    current = list(keys or [])
    for index in range(len(current), len(row)):
        if header:
            current.append(f"column_{index + 1}")
        else:
            current.append(to_cell_ref(0, first_col + index)[:-1])
    return current


def get_sheet_names(content: bytes) -> list[str]:
    """Sheet names of a workbook; [] when it cannot be read."""
    try:
        workbook = _load_workbook(content)
    except WorkbookError:
        return []
    try:
        return list(workbook.sheetnames)
    finally:
        workbook.close()


def get_sheet_dimensions(content: bytes, sheet_name: str | None = None) -> dict[str, Any] | None:
    """Used range of a sheet as {"rows", "cols", "range"}; None when unavailable."""
    try:
        workbook = _load_workbook(content, read_only=False)
    except WorkbookError:
        return None
    try:
        name = sheet_name or workbook.sheetnames[0]
        if name not in workbook.sheetnames:
            return None
        worksheet = workbook[name]
        return {
            "rows": worksheet.max_row - worksheet.min_row + 1,
            "cols": worksheet.max_column - worksheet.min_column + 1,
            "range": worksheet.dimensions,
        }
    finally:
        workbook.close()


def _excel_value(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool, datetime, date, time)):
        return value
    return str(value)


def generate_excel(records: list[Record], *, sheet_name: str = "Sheet1") -> bytes:
    """Write records to a single-sheet XLSX workbook.

    Raises:
        WorkbookError: If openpyxl is not installed.
    """
    try:
        from openpyxl import Workbook
    except ImportError as e:
        raise WorkbookError(ExcelErrorKind.DEPENDENCY_MISSING, DEPENDENCY_MESSAGE) from e

    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = sheet_name

    headers = extract_fields(records)
    if headers:
        worksheet.append(headers)
    for record in records:
        worksheet.append([_excel_value(record.get(header)) for header in headers])

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


class ExcelParser:
    """FormatParser for XLSX workbooks. Content must be bytes."""

    format = FileFormat.XLSX

    def parse(self, content: str | bytes, options: ParseOptions | None = None) -> ParseResult:
        if isinstance(content, str):
            return _failure(ExcelErrorKind.CORRUPT_FILE, "Excel content must be bytes, got text")
        xlsx_options = options.xlsx if options is not None else XlsxParseOptions()
        return parse_excel(content, xlsx_options)

    def generate(self, records: list[Record], options: ParseOptions | None = None) -> bytes:
        return generate_excel(records)
