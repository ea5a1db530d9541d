"""Sentinel for "path not found" in path navigation.

navigate_path() must distinguish a path that resolves to JSON null from a
path that does not resolve at all. Callers that care pass default=MISSING:

    value = navigate_path(payload, "data.items", default=MISSING)
    if value is MISSING:
        ...  # segment absent, wrong type, index out of range, or path too long
    elif value is None:
        ...  # present and explicitly null
"""

from typing import Final


class MissingSentinel:
    """Sentinel class to distinguish missing paths from None values.

    This is a singleton - use the MISSING instance, not the class directly.
    Comparison should always use `is` identity, never equality.
    """

    __slots__ = ()

    def __repr__(self) -> str:
        return "<MISSING>"

    def __bool__(self) -> bool:
        return False


MISSING: Final[MissingSentinel] = MissingSentinel()
"""Singleton sentinel indicating a path did not resolve.

Use identity comparison: `if value is MISSING:`
"""
