# src/sluice/plugins/hookspecs.py
"""pluggy hook specifications for sluice plugins.

Sources and parsers register themselves by implementing these hooks. The
PluginManager collects the returned classes and keys them by
source_type / format.

Usage (implementing a plugin):
    from sluice.plugins.hookspecs import hookimpl

    class WarehousePlugin:
        @hookimpl  # NOT @hookspec - that's for defining specs
        def sluice_get_sources(self):
            return [WarehouseSource]

Note: @hookspec defines the hook interface (done here).
      @hookimpl marks plugin implementations of those hooks.
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from sluice.plugins.protocols import DataSourceProtocol, FormatParserProtocol

# Project name for pluggy
PROJECT_NAME = "sluice"

# Hook specification marker
hookspec = pluggy.HookspecMarker(PROJECT_NAME)

# Hook implementation marker (for plugins to use)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class SluiceSourceSpec:
    """Hook specifications for data sources."""

    @hookspec
    def sluice_get_sources(self) -> list[type["DataSourceProtocol"]]:  # type: ignore[empty-body]
        """Return data source classes.

        Returns:
            List of source classes (not instances)
        """


class SluiceParserSpec:
    """Hook specifications for format parsers."""

    @hookspec
    def sluice_get_parsers(self) -> list[type["FormatParserProtocol"]]:  # type: ignore[empty-body]
        """Return format parser classes.

        Returns:
            List of parser classes (not instances)
        """
