"""Format parsers: CSV, JSON/NDJSON, XML and Excel.

Each format exposes module-level functions (parse_csv, generate_csv, ...)
and a parser class implementing FormatParserProtocol. FileParserService
detects formats and dispatches to the parser classes.
"""

from sluice.plugins.parsers.csv_parser import CSVParser, detect_delimiter, generate_csv, parse_csv
from sluice.plugins.parsers.excel_parser import (
    ExcelParser,
    WorkbookError,
    generate_excel,
    get_sheet_names,
    is_excel_file,
    parse_cell_ref,
    parse_excel,
    parse_range,
    to_cell_ref,
)
from sluice.plugins.parsers.fields import coerce_scalar, extract_fields
from sluice.plugins.parsers.json_parser import (
    JSONParser,
    generate_json,
    generate_json_lines,
    is_json_lines,
    parse_json,
    parse_json_lines,
)
from sluice.plugins.parsers.options import (
    CsvParseOptions,
    JsonParseOptions,
    ParseOptions,
    XlsxParseOptions,
    XmlParseOptions,
)
from sluice.plugins.parsers.service import FileParserService, default_parsers
from sluice.plugins.parsers.xml_parser import (
    XMLParser,
    escape_xml,
    generate_xml,
    get_child_element_names,
    get_root_element,
    is_xml,
    parse_xml,
)

__all__ = [
    "CSVParser",
    "CsvParseOptions",
    "ExcelParser",
    "FileParserService",
    "JSONParser",
    "JsonParseOptions",
    "ParseOptions",
    "WorkbookError",
    "XMLParser",
    "XlsxParseOptions",
    "XmlParseOptions",
    "coerce_scalar",
    "default_parsers",
    "detect_delimiter",
    "escape_xml",
    "extract_fields",
    "generate_csv",
    "generate_excel",
    "generate_json",
    "generate_json_lines",
    "generate_xml",
    "get_child_element_names",
    "get_root_element",
    "get_sheet_names",
    "is_excel_file",
    "is_json_lines",
    "is_xml",
    "parse_cell_ref",
    "parse_csv",
    "parse_excel",
    "parse_json",
    "parse_json_lines",
    "parse_range",
    "parse_xml",
    "to_cell_ref",
]
