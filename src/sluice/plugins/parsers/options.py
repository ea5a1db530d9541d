# src/sluice/plugins/parsers/options.py
"""Typed parse options for each file format.

Options are Pydantic models so that file sources can validate the nested
``parse`` block of their configuration the same way they validate the rest.
Every parser also accepts ``None`` and falls back to the defaults here.
"""

from pydantic import Field, field_validator

from sluice.contracts import FileFormat
from sluice.plugins.config_base import PluginConfig


class CsvParseOptions(PluginConfig):
    """Options for CSV/TSV parsing and generation.

    delimiter=None means auto-detect from the first lines of content.
    headers, when given, replace the header row (or name the columns of a
    headerless file).
    """

    delimiter: str | None = None
    header: bool = True
    skip_empty_lines: bool = True
    encoding: str = "utf-8"
    quote_char: str = '"'
    headers: list[str] | None = None
    preview: int | None = Field(default=None, ge=1)
    coerce_values: bool = False

    @field_validator("delimiter", "quote_char")
    @classmethod
    def _single_character(cls, v: str | None) -> str | None:
        if v is not None and len(v) != 1:
            raise ValueError("must be a single character")
        return v


class JsonParseOptions(PluginConfig):
    """Options for JSON parsing. path selects the record array inside the document."""

    path: str | None = None


class XmlParseOptions(PluginConfig):
    """Options for the tag-scanning XML extractor.

    record_path may be a bare tag ("product"), an XPath-like path
    ("//catalog/product") or alternatives separated by "|". Only the last
    segment of each alternative is used as a tag name.
    attribute_prefix defaults to the parser's ExtractionLimits.default_attribute_prefix.
    """

    record_path: str | None = None
    attribute_prefix: str | None = None


class XlsxParseOptions(PluginConfig):
    """Options for workbook parsing.

    sheet is a 0-based index or a sheet name. range is an A1-style range
    such as "A1:D20" limiting the cells read.
    """

    sheet: int | str | None = None
    range: str | None = None
    header: bool = True


class ParseOptions(PluginConfig):
    """Format hint plus per-format options, as carried by file sources."""

    format: FileFormat | None = None
    csv: CsvParseOptions = Field(default_factory=CsvParseOptions)
    json_options: JsonParseOptions = Field(default_factory=JsonParseOptions, alias="json")
    xml: XmlParseOptions = Field(default_factory=XmlParseOptions)
    xlsx: XlsxParseOptions = Field(default_factory=XlsxParseOptions)

    model_config = {"extra": "forbid", "frozen": True, "populate_by_name": True}
