# src/sluice/plugins/manager.py
"""Plugin manager for source and parser registration and lookup.

Uses pluggy for hook-based registration. Each SourceType and FileFormat maps
to exactly one implementation class.
"""

from typing import Any

import pluggy

from sluice.contracts import FileFormat, SourceType
from sluice.plugins.hookspecs import PROJECT_NAME, SluiceParserSpec, SluiceSourceSpec
from sluice.plugins.parsers.service import FileParserService
from sluice.plugins.protocols import DataSourceProtocol, FormatParserProtocol


class PluginManager:
    """Manages source and parser registration and lookup.

    Usage:
        manager = PluginManager()
        manager.register_builtin_plugins()

        source = manager.create_source(SourceType.REST_API)
        result = source.fetch(config)
    """

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)

        # Register hookspecs
        self._pm.add_hookspecs(SluiceSourceSpec)
        self._pm.add_hookspecs(SluiceParserSpec)

        # Caches keyed by variant for duplicate detection
        self._sources: dict[SourceType, type[DataSourceProtocol]] = {}
        self._parsers: dict[FileFormat, type[FormatParserProtocol]] = {}

    def register_builtin_plugins(self) -> None:
        """Register the sources and parsers shipped with sluice."""
        from sluice.plugins.builtin import BuiltinParsers, BuiltinSources

        self.register(BuiltinSources())
        self.register(BuiltinParsers())

    def register(self, plugin: Any) -> None:
        """Register a plugin.

        Args:
            plugin: Plugin instance implementing hook methods

        Raises:
            ValueError: If the plugin registers a variant that is already taken.
                The plugin is not left registered.
        """
        self._pm.register(plugin)
        try:
            self._refresh_caches()
        except ValueError:
            self._pm.unregister(plugin)
            raise

    def _refresh_caches(self) -> None:
        """Refresh caches from hooks.

        Raises:
            ValueError: If two classes claim the same source type or format
        """
        new_sources: dict[SourceType, type[DataSourceProtocol]] = {}
        new_parsers: dict[FileFormat, type[FormatParserProtocol]] = {}

        for sources in self._pm.hook.sluice_get_sources():
            for cls in sources:
                key = SourceType(cls.source_type)
                if key in new_sources:
                    raise ValueError(f"Duplicate source type: '{key}'. Already registered by {new_sources[key].__name__}")
                new_sources[key] = cls

        for parsers in self._pm.hook.sluice_get_parsers():
            for cls in parsers:
                key = FileFormat(cls.format)
                if key in new_parsers:
                    raise ValueError(f"Duplicate parser format: '{key}'. Already registered by {new_parsers[key].__name__}")
                new_parsers[key] = cls

        # All validated, update caches
        self._sources = new_sources
        self._parsers = new_parsers

    # === Getters ===

    def get_sources(self) -> list[type[DataSourceProtocol]]:
        """Get all registered source classes."""
        return list(self._sources.values())

    def get_parsers(self) -> list[type[FormatParserProtocol]]:
        """Get all registered parser classes."""
        return list(self._parsers.values())

    # === Lookup by variant ===

    def get_source(self, source_type: SourceType | str) -> type[DataSourceProtocol]:
        """Source class for a source type.

        Raises:
            ValueError: If source_type is unknown or nothing is registered for it.
        """
        key = SourceType(source_type)
        try:
            return self._sources[key]
        except KeyError:
            raise ValueError(f"No source registered for type: '{key}'") from None

    def get_parser(self, fmt: FileFormat | str) -> type[FormatParserProtocol]:
        """Parser class for a file format.

        Raises:
            ValueError: If fmt is unknown or nothing is registered for it.
        """
        key = FileFormat(fmt)
        try:
            return self._parsers[key]
        except KeyError:
            raise ValueError(f"No parser registered for format: '{key}'") from None

    # === Instances ===

    def create_parser_service(self) -> FileParserService:
        """FileParserService over one instance of every registered parser."""
        return FileParserService({fmt: cls() for fmt, cls in self._parsers.items()})

    def create_source(self, source_type: SourceType | str) -> DataSourceProtocol:
        """Instantiate the source for source_type; file sources get this manager's parsers."""
        cls = self.get_source(source_type)
        if getattr(cls, "parses_files", False):
            return cls(parser_service=self.create_parser_service())  # type: ignore[call-arg]
        return cls()
