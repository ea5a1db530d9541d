# src/sluice/plugins/parsers/xml_parser.py
"""Shallow, regex-driven XML record extraction.

This is a tag scanner, not a DOM parser. For each record element it reads:
- attributes of the record element itself (keys prefixed, default "@")
- direct children with plain text content: <name>Widget</name>
- self-closing children carrying a value attribute: <price value="9.5"/>

Nested repeating elements, namespaces and CDATA are not represented.
Attribute and child names are matched as word characters only, so
data-id="7" reads as "@id" and children named with "-" or ":" are skipped,
even though such names are accepted as record tags. Keys of that shape do
not survive generate_xml() followed by parse_xml().
record_path and attribute_prefix are defined against exactly this behavior,
so do not swap in a full XML parser here.

IMPORTANT: Tag names come from untrusted configuration. They are validated
against a strict character class and a length limit before they are ever
placed into a regular expression.
"""

import re
from html import unescape
from typing import Any

from sluice.contracts import FileFormat, ParseResult, Record
from sluice.core.limits import DEFAULT_LIMITS, ExtractionLimits
from sluice.plugins.parsers.fields import coerce_scalar, extract_fields
from sluice.plugins.parsers.options import ParseOptions, XmlParseOptions
from sluice.plugins.utils import decode_content

_VALID_TAG_NAME = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_\-:]*$")

_ROOT_TAG = re.compile(r"^<([^\s>/]+)([^>]*)>")
_ATTRIBUTE = re.compile(r"""(\w+)=["']([^"']*)["']""")
_SIMPLE_CHILD = re.compile(r"<(\w+)(?:[^>]*)>([^<]*)</\1>")
_SELF_CLOSING_CHILD = re.compile(r"<(\w+)\s+([^/>]+)/>")
_VALUE_ATTRIBUTE = re.compile(r"""value=["']([^"']*)["']""")
_ELEMENT_NAME = re.compile(r"<(\w+)[\s>/]")
_LEADING_ELEMENT = re.compile(r"^<(\w+)")


def is_valid_tag_name(tag_name: str, *, limits: ExtractionLimits = DEFAULT_LIMITS) -> bool:
    """Check a tag name is safe to interpolate into a regex."""
    if not tag_name or len(tag_name) > limits.max_tag_name_length:
        return False
    return _VALID_TAG_NAME.match(tag_name) is not None


def _record_pattern(tag_name: str) -> re.Pattern[str]:
    """Regex matching one <tag ...>...</tag> or <tag .../> element.

    Caller must have validated tag_name with is_valid_tag_name().
    """
    tag = re.escape(tag_name)
    return re.compile(rf"<{tag}(?:\s[^>]*?)?(?:/>|>[\s\S]*?</{tag}\s*>)", re.IGNORECASE)


def parse_xml_element(xml: str, attribute_prefix: str = "@") -> Record | None:
    """Extract one flat record from the text of a single element.

    Returns None when the element has no attributes and no simple children.
    """
    result: Record = {}

    root = _ROOT_TAG.match(xml)
    if root is not None:
        for name, value in _ATTRIBUTE.findall(root.group(2)):
            result[f"{attribute_prefix}{name}"] = coerce_scalar(unescape(value))

    for name, text in _SIMPLE_CHILD.findall(xml):
        result[name] = coerce_scalar(unescape(text))

    for name, attributes in _SELF_CLOSING_CHILD.findall(xml):
        value = _VALUE_ATTRIBUTE.search(attributes)
        if value is not None:
            result[name] = coerce_scalar(unescape(value.group(1)))

    return result or None


def _record_tags(record_path: str | None, limits: ExtractionLimits) -> list[str]:
    """Turn "//catalog/product|item" into ["product", "item"]."""
    if not record_path:
        return list(limits.default_record_tags)
    tags = []
    for alternative in record_path.split("|"):
        tag = alternative.strip().removeprefix("//").split("/")[-1]
        if tag:
            tags.append(tag)
    return tags


def _display_tag(tag_name: str) -> str:
    return tag_name if len(tag_name) <= 40 else f"{tag_name[:40]}..."


def parse_xml(
    content: str | bytes,
    options: XmlParseOptions | None = None,
    *,
    limits: ExtractionLimits = DEFAULT_LIMITS,
) -> ParseResult:
    """Extract records from XML content.

    Candidate tags are tried in order and the first tag with any match
    supplies all records; matches of later candidates are not merged in.
    Invalid tag names are skipped with a warning. Finding nothing is not an
    error: the result is successful, empty, and explains what was searched.
    """
    options = options or XmlParseOptions()
    prefix = options.attribute_prefix if options.attribute_prefix is not None else limits.default_attribute_prefix
    text = decode_content(content)
    warnings: list[str] = []

    records: list[Record] = []
    for tag_name in _record_tags(options.record_path, limits):
        if not is_valid_tag_name(tag_name, limits=limits):
            warnings.append(f'Ignored invalid record tag name: "{_display_tag(tag_name)}"')
            continue
        for match in _record_pattern(tag_name).finditer(text):
            record = parse_xml_element(match.group(0), prefix)
            if record is not None:
                records.append(record)
        if records:
            break

    if not records:
        if options.record_path:
            warnings.append(f'No records found matching path: "{_display_tag(options.record_path)}"')
        else:
            warnings.append(f"No records found. Searched for: {', '.join(limits.default_record_tags)}")
            warnings.append("Try specifying record_path option")

    return ParseResult(
        success=True,
        format=FileFormat.XML,
        records=records,
        fields=extract_fields(records),
        total_rows=len(records),
        warnings=warnings,
    )


def is_xml(content: str | bytes) -> bool:
    """Cheap sniff: content starts with a tag or an XML declaration."""
    return decode_content(content).lstrip().startswith("<")


def get_root_element(content: str | bytes) -> str | None:
    """Name of the root element, skipping the declaration and leading comments."""
    xml = decode_content(content).strip()
    if xml.startswith("<?xml"):
        end = xml.find("?>")
        if end != -1:
            xml = xml[end + 2 :].strip()

    while xml.startswith("<!--"):
        end = xml.find("-->")
        if end == -1:
            break
        xml = xml[end + 3 :].strip()

    match = _LEADING_ELEMENT.match(xml)
    return match.group(1) if match else None


def get_child_element_names(content: str | bytes, *, limits: ExtractionLimits = DEFAULT_LIMITS) -> list[str]:
    """Unique element names found inside the root element, in document order."""
    text = decode_content(content)
    root = get_root_element(text)
    if root is None or not is_valid_tag_name(root, limits=limits):
        return []

    escaped = re.escape(root)
    start = re.search(rf"<{escaped}[^>]*>", text)
    end = re.search(rf"</{escaped}>", text)
    if start is None or end is None:
        return []

    inner = text[start.end() : end.start()]
    names: dict[str, None] = {}
    for name in _ELEMENT_NAME.findall(inner):
        names.setdefault(name, None)
    return list(names)


def escape_xml(value: str) -> str:
    """Escape the five XML special characters."""
    return (
        value.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def _text(value: Any) -> str:
    return "" if value is None else escape_xml(str(value))


def generate_xml(
    records: list[Record],
    *,
    root_element: str = "root",
    record_element: str = "item",
    declaration: bool = True,
    indent: int = 2,
    attribute_prefix: str = "@",
) -> str:
    """Serialize records as <root><item><field>value</field>...</item></root>.

    Keys carrying attribute_prefix are written back as attributes of the
    record element so parse_xml() reads them under the same keys.
    """
    space = " " * indent
    lines: list[str] = []
    if declaration:
        lines.append('<?xml version="1.0" encoding="UTF-8"?>')
    lines.append(f"<{root_element}>")

    for record in records:
        attributes = "".join(
            f' {key[len(attribute_prefix) :]}="{_text(value)}"'
            for key, value in record.items()
            if attribute_prefix and key.startswith(attribute_prefix)
        )
        lines.append(f"{space}<{record_element}{attributes}>")
        for key, value in record.items():
            if attribute_prefix and key.startswith(attribute_prefix):
                continue
            lines.append(f"{space}{space}<{key}>{_text(value)}</{key}>")
        lines.append(f"{space}</{record_element}>")

    lines.append(f"</{root_element}>")
    return "\n".join(lines)


class XMLParser:
    """FormatParser for XML."""

    format = FileFormat.XML

    def __init__(self, *, limits: ExtractionLimits = DEFAULT_LIMITS) -> None:
        self._limits = limits

    def parse(self, content: str | bytes, options: ParseOptions | None = None) -> ParseResult:
        xml_options = options.xml if options is not None else XmlParseOptions()
        return parse_xml(content, xml_options, limits=self._limits)

    def generate(self, records: list[Record], options: ParseOptions | None = None) -> str:
        xml_options = options.xml if options is not None else XmlParseOptions()
        record_element = "item"
        if xml_options.record_path:
            tags = _record_tags(xml_options.record_path, self._limits)
            if tags and is_valid_tag_name(tags[0], limits=self._limits):
                record_element = tags[0]
        prefix = xml_options.attribute_prefix
        if prefix is None:
            prefix = self._limits.default_attribute_prefix
        return generate_xml(records, record_element=record_element, attribute_prefix=prefix)
