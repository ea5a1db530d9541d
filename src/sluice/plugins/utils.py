"""Path navigation and object flattening shared by sources and parsers.

All functions here operate on JSON-like data (dicts, lists, scalars) that
came from outside the system. They never raise on shape mismatches: a path
that does not resolve returns the caller's default instead.
"""

import re
from typing import Any

from sluice.core.limits import DEFAULT_LIMITS, ExtractionLimits
from sluice.plugins.sentinels import MISSING

# "items[0]" or "matrix[1][2]": key followed by one or more [index] groups
_INDEXED_SEGMENT = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])+)$")
_INDEX_GROUP = re.compile(r"\[([^\[\]]*)\]")


def _parse_indices(raw: str) -> list[int] | None:
    """Parse "[0][3]" into [0, 3]; None if any index is not a non-negative integer."""
    indices: list[int] = []
    for token in _INDEX_GROUP.findall(raw):
        if not (token.isascii() and token.isdigit()):
            return None
        indices.append(int(token))
    return indices


def _step(current: Any, key: str) -> Any:
    """Follow one plain key. Lists accept numeric keys like "0"."""
    if isinstance(current, dict):
        return current[key] if key in current else MISSING
    if isinstance(current, list) and key.isascii() and key.isdigit():
        index = int(key)
        return current[index] if index < len(current) else MISSING
    return MISSING


def navigate_path(
    data: Any,
    path: str,
    default: Any = None,
    *,
    limits: ExtractionLimits = DEFAULT_LIMITS,
) -> Any:
    """Resolve a dotted, optionally indexed path inside JSON-like data.

    Segments are separated by "." and may carry "[n]" suffixes for list
    access, e.g. "data.items[0].name". An empty path returns data itself.

    Returns default (None unless given) when a segment is absent, an
    intermediate value is not a container, an index is applied to a
    non-list, an index is out of range or malformed, or the path exceeds
    limits.max_path_length / limits.max_path_depth.

    Examples:
        >>> navigate_path({"items": [{"name": "a"}]}, "items[0].name")
        'a'
        >>> navigate_path({"items": [{"name": "a"}]}, "items[2].name") is None
        True
    """
    if not path:
        return data
    if len(path) > limits.max_path_length:
        return default

    parts = path.split(".")
    if len(parts) > limits.max_path_depth:
        return default

    current: Any = data
    for part in parts:
        if not isinstance(current, (dict, list)):
            return default

        match = _INDEXED_SEGMENT.match(part)
        if match is None:
            current = _step(current, part)
            if current is MISSING:
                return default
            continue

        indices = _parse_indices(match.group(2))
        if indices is None:
            return default
        current = _step(current, match.group(1))
        for index in indices:
            if not isinstance(current, list) or index >= len(current):
                return default
            current = current[index]

    return current


def get_nested_value(data: Any, path: str, default: Any = None) -> Any:
    """Dotted-path getter with default limits (see navigate_path)."""
    return navigate_path(data, path, default)


def set_nested_value(obj: dict[str, Any], path: str, value: Any) -> None:
    """Set a value at a dotted path, creating intermediate dicts.

    Intermediate values that are missing or not dicts are replaced by new
    dicts, so the assignment always succeeds.

    Args:
        obj: Dict to modify in place
        path: Dot-separated path (e.g., "user.profile.name")
        value: Value to store at the final segment
    """
    parts = path.split(".")
    current = obj
    for key in parts[:-1]:
        child = current.get(key)
        if not isinstance(child, dict):
            child = {}
            current[key] = child
        current = child
    current[parts[-1]] = value


def flatten_object(
    obj: dict[str, Any],
    prefix: str = "",
    delimiter: str = ".",
    depth: int = 0,
    *,
    limits: ExtractionLimits = DEFAULT_LIMITS,
) -> dict[str, Any]:
    """Flatten nested dicts into one level, joining keys with delimiter.

    Lists and scalars are kept as values. Once depth reaches
    limits.max_flatten_depth, a nested dict is stored as-is under its
    joined key rather than recursed into. Empty nested dicts are also kept
    as values so their key is not lost.

    Examples:
        >>> flatten_object({"a": {"b": 1, "c": [1, 2]}})
        {'a.b': 1, 'a.c': [1, 2]}
    """
    result: dict[str, Any] = {}
    for key, value in obj.items():
        new_key = f"{prefix}{delimiter}{key}" if prefix else str(key)
        if isinstance(value, dict) and value and depth < limits.max_flatten_depth:
            result.update(flatten_object(value, new_key, delimiter, depth + 1, limits=limits))
        else:
            result[new_key] = value
    return result


def decode_content(content: str | bytes, encoding: str = "utf-8") -> str:
    """Return text content, decoding bytes and stripping a leading BOM.

    Undecodable bytes are replaced rather than raised so that one bad byte
    does not discard an otherwise readable file.
    """
    if isinstance(content, bytes):
        text = content.decode(encoding, errors="replace")
    else:
        text = content
    return text.removeprefix("\ufeff")
