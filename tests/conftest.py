# tests/conftest.py
"""Shared test fixtures and helpers.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import io
import os
from collections.abc import Callable
from typing import Any

import pytest
from hypothesis import Phase, Verbosity, settings

from sluice.plugins.manager import PluginManager
from sluice.plugins.parsers.service import FileParserService


@pytest.fixture
def plugin_manager() -> PluginManager:
    """PluginManager with the built-in sources and parsers registered."""
    manager = PluginManager()
    manager.register_builtin_plugins()
    return manager


@pytest.fixture
def parser_service() -> FileParserService:
    return FileParserService()


@pytest.fixture
def make_xlsx() -> Callable[..., bytes]:
    """Build an in-memory workbook: make_xlsx({"Sheet1": [[...], ...]})."""
    openpyxl = pytest.importorskip("openpyxl")

    def _make(sheets: dict[str, list[list[Any]]]) -> bytes:
        workbook = openpyxl.Workbook()
        workbook.remove(workbook.active)
        for name, rows in sheets.items():
            worksheet = workbook.create_sheet(title=name)
            for row in rows:
                worksheet.append(row)
        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    return _make


# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
