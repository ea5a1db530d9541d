# src/sluice/core/limits.py
"""Safety bounds applied to untrusted payloads and configuration.

Paths, tag names and nesting depth all come from external configuration or
external data. These limits cap the work any single call can be made to do.
They are carried as an explicit value so parsers stay pure functions of
their inputs; pass a custom ExtractionLimits to tighten or relax them.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ExtractionLimits:
    """Bounds for path navigation, flattening and XML tag scanning.

    Attributes:
        max_path_length: Longest dotted path navigate_path() will evaluate
        max_path_depth: Most segments navigate_path() will follow
        max_flatten_depth: Nesting level beyond which flatten_object() keeps
            values as-is instead of recursing
        max_tag_name_length: Longest XML tag name allowed into a regex
        max_item_errors: Explicit per-item errors reported by parse_json()
            before the rest are summarized as one warning
        default_record_tags: XML tag names searched, in order, when no
            record_path is configured
        default_attribute_prefix: Key prefix for XML attributes
    """

    max_path_length: int = 1_000
    max_path_depth: int = 50
    max_flatten_depth: int = 20
    max_tag_name_length: int = 100
    max_item_errors: int = 3
    default_record_tags: tuple[str, ...] = ("item", "record", "row", "product", "customer", "order", "entry")
    default_attribute_prefix: str = "@"

    def __post_init__(self) -> None:
        for name in ("max_path_length", "max_path_depth", "max_flatten_depth", "max_tag_name_length"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1")
        if self.max_item_errors < 0:
            raise ValueError("max_item_errors must be >= 0")


DEFAULT_LIMITS = ExtractionLimits()
