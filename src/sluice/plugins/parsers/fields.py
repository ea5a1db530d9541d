"""Field extraction and scalar coercion shared by all parsers."""

import re
from collections.abc import Iterable
from typing import Any

# Plain decimal numbers only: no hex, no "Infinity", no whitespace
_NUMBER = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")


def extract_fields(records: Iterable[dict[str, Any]]) -> list[str]:
    """Return the union of record keys in first-seen order.

    Used to report a lightweight schema for a batch without requiring one
    upfront. Keys are not sorted; the first record to mention a key decides
    its position.
    """
    seen: dict[str, None] = {}
    for record in records:
        for key in record:
            seen.setdefault(key, None)
    return list(seen)


def coerce_scalar(value: str) -> str | int | float | bool | None:
    """Convert text from a text-only format into a typed scalar.

    "" stays "", true/false (any case) become booleans, null/nil become
    None, decimal numbers become int or float. Anything else is returned
    stripped.

    Examples:
        >>> coerce_scalar(" 42 ")
        42
        >>> coerce_scalar("TRUE")
        True
        >>> coerce_scalar("4.5e1")
        45.0
    """
    trimmed = value.strip()
    if trimmed == "":
        return ""

    lowered = trimmed.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if lowered in ("null", "nil"):
        return None

    if _NUMBER.match(trimmed):
        if "." in trimmed or "e" in lowered:
            return float(trimmed)
        return int(trimmed)

    return trimmed


def is_number_text(value: str) -> bool:
    """True for plain decimal number text such as "42", "-1.5" or "2e3"."""
    return _NUMBER.match(value.strip()) is not None
