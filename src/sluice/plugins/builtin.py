# src/sluice/plugins/builtin.py
"""Hook implementations registering the built-in sources and parsers."""

from sluice.plugins.hookspecs import hookimpl
from sluice.plugins.parsers.csv_parser import CSVParser
from sluice.plugins.parsers.excel_parser import ExcelParser
from sluice.plugins.parsers.json_parser import JSONParser
from sluice.plugins.parsers.xml_parser import XMLParser
from sluice.plugins.sources.graphql_source import GraphqlApiSource
from sluice.plugins.sources.local_file_source import LocalFileSource
from sluice.plugins.sources.remote_file_source import RemoteFileSource
from sluice.plugins.sources.rest_source import RestApiSource
from sluice.plugins.sources.sql_source import SqlDatabaseSource


class BuiltinSources:
    @hookimpl
    def sluice_get_sources(self) -> list[type]:
        return [RestApiSource, GraphqlApiSource, LocalFileSource, RemoteFileSource, SqlDatabaseSource]


class BuiltinParsers:
    @hookimpl
    def sluice_get_parsers(self) -> list[type]:
        return [CSVParser, JSONParser, XMLParser, ExcelParser]
