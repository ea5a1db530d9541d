# src/sluice/plugins/sources/__init__.py
"""Data sources: REST, GraphQL, local file, remote file and SQL database."""

from sluice.plugins.sources.auth import AuthConfig, build_auth_headers, build_auth_params
from sluice.plugins.sources.base import BaseSource, coerce_records
from sluice.plugins.sources.graphql_source import GraphqlApiSource, GraphqlApiSourceConfig
from sluice.plugins.sources.local_file_source import LocalFileSource, LocalFileSourceConfig
from sluice.plugins.sources.pagination import GraphqlPaginationConfig, PaginationConfig
from sluice.plugins.sources.remote_file_source import RemoteFileSource, RemoteFileSourceConfig
from sluice.plugins.sources.rest_source import RestApiSource, RestApiSourceConfig
from sluice.plugins.sources.sql_source import SqlDatabaseSource, SqlDatabaseSourceConfig

__all__ = [
    "AuthConfig",
    "BaseSource",
    "GraphqlApiSource",
    "GraphqlApiSourceConfig",
    "GraphqlPaginationConfig",
    "LocalFileSource",
    "LocalFileSourceConfig",
    "PaginationConfig",
    "RemoteFileSource",
    "RemoteFileSourceConfig",
    "RestApiSource",
    "RestApiSourceConfig",
    "SqlDatabaseSource",
    "SqlDatabaseSourceConfig",
    "build_auth_headers",
    "build_auth_params",
    "coerce_records",
]
