"""Tests for the tag-scanning XML extractor."""

import pytest

from sluice.contracts import FileFormat
from sluice.core.limits import ExtractionLimits
from sluice.plugins.parsers.options import ParseOptions, XmlParseOptions
from sluice.plugins.parsers.xml_parser import (
    XMLParser,
    escape_xml,
    generate_xml,
    get_child_element_names,
    get_root_element,
    is_valid_tag_name,
    is_xml,
    parse_xml,
    parse_xml_element,
)

CATALOG = """<?xml version="1.0" encoding="UTF-8"?>
<catalog>
  <product id="1" active="true">
    <name>Widget</name>
    <price value="9.5"/>
  </product>
  <product id="2">
    <name>Gadget &amp; Co</name>
    <stock>0</stock>
  </product>
</catalog>
"""


class TestParseXml:
    """Tests for parse_xml()."""

    def test_record_path_tag(self) -> None:
        result = parse_xml(CATALOG, XmlParseOptions(record_path="product"))

        assert result.success is True
        assert result.format == FileFormat.XML
        assert result.records == [
            {"@id": 1, "@active": True, "name": "Widget", "price": 9.5},
            {"@id": 2, "name": "Gadget & Co", "stock": 0},
        ]
        assert result.fields == ["@id", "@active", "name", "price", "stock"]

    def test_xpath_like_record_path(self) -> None:
        result = parse_xml(CATALOG, XmlParseOptions(record_path="//catalog/product"))

        assert result.total_rows == 2

    def test_custom_attribute_prefix(self) -> None:
        result = parse_xml(CATALOG, XmlParseOptions(record_path="product", attribute_prefix="_"))

        assert result.records[0]["_id"] == 1

    def test_attribute_prefix_defaults_to_limits(self) -> None:
        limits = ExtractionLimits(default_attribute_prefix="$")

        result = parse_xml(CATALOG, XmlParseOptions(record_path="product"), limits=limits)

        assert result.records[0]["$id"] == 1
        assert "@id" not in result.records[0]

    def test_explicit_attribute_prefix_beats_limits(self) -> None:
        limits = ExtractionLimits(default_attribute_prefix="$")

        result = parse_xml(CATALOG, XmlParseOptions(record_path="product", attribute_prefix="_"), limits=limits)

        assert result.records[0]["_id"] == 1

    def test_default_record_tags(self) -> None:
        result = parse_xml("<rows><row><a>1</a></row><row><a>2</a></row></rows>")

        assert result.records == [{"a": 1}, {"a": 2}]
        assert result.warnings == []

    def test_tag_does_not_match_longer_names(self) -> None:
        """<items> is not an <item> record."""
        result = parse_xml("<items><item><a>1</a></item></items>")

        assert result.records == [{"a": 1}]

    def test_first_matching_alternative_wins(self) -> None:
        content = "<data><row><a>1</a></row><entry><b>2</b></entry></data>"

        result = parse_xml(content, XmlParseOptions(record_path="missing|entry|row"))

        assert result.records == [{"b": 2}]

    def test_tag_match_is_case_insensitive(self) -> None:
        result = parse_xml("<ROOT><ITEM><a>x</a></ITEM></ROOT>")

        assert result.records == [{"a": "x"}]

    def test_empty_elements_are_skipped(self) -> None:
        result = parse_xml("<r><item/><item><a>1</a></item></r>")

        assert result.records == [{"a": 1}]

    @pytest.mark.parametrize("record_path", ["bad tag!", "a(b)", "x" * 101, "1starts-with-digit", "na*me"])
    def test_invalid_tag_name_never_raises(self, record_path: str) -> None:
        result = parse_xml("<r><item><a>1</a></item></r>", XmlParseOptions(record_path=record_path))

        assert result.success is True
        assert result.records == []
        assert result.warnings[0].startswith("Ignored invalid record tag name")
        assert result.warnings[-1].startswith("No records found matching path")

    def test_long_tag_is_truncated_in_warning(self) -> None:
        result = parse_xml("<r/>", XmlParseOptions(record_path="x" * 500))

        assert all(len(w) < 120 for w in result.warnings)

    def test_nothing_found_explains_search(self) -> None:
        result = parse_xml("<r><thing><a>1</a></thing></r>")

        assert result.success is True
        assert result.records == []
        assert result.warnings[0].startswith("No records found. Searched for: item, record, row")
        assert result.warnings[1] == "Try specifying record_path option"

    def test_tag_length_limit_is_configurable(self) -> None:
        limits = ExtractionLimits(max_tag_name_length=3)

        result = parse_xml("<r><item><a>1</a></item></r>", XmlParseOptions(record_path="item"), limits=limits)

        assert result.records == []


class TestParseXmlElement:
    def test_attributes_children_and_value_attributes(self) -> None:
        element = '<p sku="A-1"><name>W</name><weight value="1.5" unit="kg"/></p>'

        assert parse_xml_element(element) == {"@sku": "A-1", "name": "W", "weight": 1.5}

    def test_only_word_character_names_are_read(self) -> None:
        record = parse_xml_element('<item data-id="7"><unit-price>1</unit-price><c>2</c></item>')

        assert record == {"@id": 7, "c": 2}

    def test_nothing_to_extract(self) -> None:
        assert parse_xml_element("<p/>") is None


class TestTagNameValidation:
    @pytest.mark.parametrize("tag", ["item", "ns:item", "order-line", "_x1"])
    def test_valid(self, tag: str) -> None:
        assert is_valid_tag_name(tag) is True

    @pytest.mark.parametrize("tag", ["", "9item", "it em", "it.em", "a" * 101])
    def test_invalid(self, tag: str) -> None:
        assert is_valid_tag_name(tag) is False


class TestXmlHelpers:
    def test_is_xml(self) -> None:
        assert is_xml("  <a/>") is True
        assert is_xml("a,b") is False

    def test_root_element_skips_declaration_and_comments(self) -> None:
        content = '<?xml version="1.0"?>\n<!-- export -->\n<catalog><x/></catalog>'

        assert get_root_element(content) == "catalog"

    def test_root_element_of_non_xml(self) -> None:
        assert get_root_element("plain text") is None

    def test_child_element_names(self) -> None:
        content = "<catalog><product><name>a</name></product><product/></catalog>"

        assert get_child_element_names(content) == ["product", "name"]

    def test_escape_xml(self) -> None:
        assert escape_xml("""<a href="x">'&'</a>""") == "&lt;a href=&quot;x&quot;&gt;&apos;&amp;&apos;&lt;/a&gt;"


class TestGenerateXml:
    def test_layout(self) -> None:
        xml = generate_xml([{"id": 1, "name": None}], root_element="products", record_element="product", declaration=False)

        assert xml == "<products>\n  <product>\n    <id>1</id>\n    <name></name>\n  </product>\n</products>"

    def test_declaration(self) -> None:
        assert generate_xml([]).startswith('<?xml version="1.0" encoding="UTF-8"?>\n<root>')

    def test_prefixed_keys_become_attributes(self) -> None:
        xml = generate_xml([{"@id": 7, "name": "A & B"}], declaration=False)

        assert '<item id="7">' in xml
        assert "<name>A &amp; B</name>" in xml

    def test_parse_reads_generated_output(self) -> None:
        records = [{"@id": 1, "name": "A & B", "price": 2.5}, {"@id": 2, "name": "<C>", "price": 3}]

        assert parse_xml(generate_xml(records)).records == records


class TestXMLParser:
    def test_uses_xml_options(self) -> None:
        options = ParseOptions.from_dict({"xml": {"record_path": "product"}})

        assert XMLParser().parse(CATALOG, options).total_rows == 2

    def test_generate_uses_record_path_as_element(self) -> None:
        options = ParseOptions.from_dict({"xml": {"record_path": "//catalog/product"}})

        assert "<product>" in XMLParser().generate([{"a": 1}], options)

    def test_generate_uses_limits_attribute_prefix(self) -> None:
        parser = XMLParser(limits=ExtractionLimits(default_attribute_prefix="$"))

        assert '<item id="7">' in parser.generate([{"$id": 7, "a": 1}])
