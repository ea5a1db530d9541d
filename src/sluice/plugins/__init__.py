# src/sluice/plugins/__init__.py
"""Extraction plugins: data sources and format parsers, registered via pluggy.

- sources: REST, GraphQL, local file, remote file and SQL data sources
- parsers: CSV, JSON/NDJSON, XML and Excel format parsers plus FileParserService
- utils: path navigation and object flattening shared by both
- hookspecs/manager: pluggy hook definitions and the PluginManager registry

Import from the submodules directly; this package keeps no re-exports so
that importing a single parser does not pull in every source.
"""
