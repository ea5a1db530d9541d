"""Property-based tests for the text format writers and readers.

Whatever generate_* writes, the matching parse_* must read back unchanged
for the value space that format can represent.
"""

from typing import Any

from hypothesis import given
from hypothesis import strategies as st

from sluice.plugins.parsers.csv_parser import generate_csv, parse_csv
from sluice.plugins.parsers.json_parser import generate_json, generate_json_lines, parse_json, parse_json_lines
from sluice.plugins.parsers.options import CsvParseOptions

json_scalars = st.none() | st.booleans() | st.integers() | st.floats(allow_nan=False, allow_infinity=False) | st.text()
json_values = st.recursive(
    json_scalars,
    lambda children: st.lists(children, max_size=3) | st.dictionaries(st.text(max_size=5), children, max_size=3),
    max_leaves=10,
)
records = st.lists(st.dictionaries(st.text(max_size=8), json_values, max_size=5), max_size=10)


@given(records)
def test_json_array(rows: list[dict[str, Any]]) -> None:
    result = parse_json(generate_json(rows))

    assert result.success is True
    assert result.records == rows


@given(records.filter(lambda rows: len(rows) > 0))
def test_json_lines(rows: list[dict[str, Any]]) -> None:
    result = parse_json_lines(generate_json_lines(rows))

    assert result.success is True
    assert result.records == rows


_cell_text = st.text(alphabet='abcXYZ019 ,"\n;', min_size=1, max_size=8).filter(lambda s: s == s.strip())


@given(
    st.lists(st.text(alphabet="abcdefgh_", min_size=1, max_size=6), min_size=1, max_size=4, unique=True).flatmap(
        lambda headers: st.lists(st.fixed_dictionaries({h: _cell_text for h in headers}), min_size=1, max_size=6)
    )
)
def test_csv(rows: list[dict[str, str]]) -> None:
    result = parse_csv(generate_csv(rows), CsvParseOptions(delimiter=","))

    assert result.errors == []
    assert result.records == rows
