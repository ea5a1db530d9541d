# src/sluice/plugins/sources/pagination.py
"""Pagination configuration for the REST and GraphQL sources.

max_pages bounds the number of requests a single fetch() issues, whatever
the server says about further pages. Defaults: page_size=100, max_pages=100.
"""

from pydantic import Field

from sluice.contracts import GraphQLPaginationStyle, PaginationStrategy
from sluice.plugins.config_base import PluginConfig

DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_PAGES = 100


class OffsetPagination(PluginConfig):
    """?offset=N&limit=M. total_path points at the total record count in the body."""

    offset_param: str = "offset"
    limit_param: str = "limit"
    total_path: str | None = None


class CursorPagination(PluginConfig):
    """?cursor=X&limit=M. cursor_path/has_next_path point into the body."""

    cursor_param: str = "cursor"
    limit_param: str = "limit"
    cursor_path: str | None = None
    has_next_path: str | None = None


class PagePagination(PluginConfig):
    """?page=N&per_page=M with 1-based page numbers."""

    page_param: str = "page"
    per_page_param: str = "per_page"
    total_pages_path: str | None = None


class LinkPagination(PluginConfig):
    """Follows the rel="next" URL of the Link response header."""


class PaginationConfig(PluginConfig):
    """REST pagination. Only the block matching strategy is consulted."""

    strategy: PaginationStrategy
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)
    max_pages: int = Field(default=DEFAULT_MAX_PAGES, ge=1)
    offset: OffsetPagination = Field(default_factory=OffsetPagination)
    cursor: CursorPagination = Field(default_factory=CursorPagination)
    page: PagePagination = Field(default_factory=PagePagination)
    link: LinkPagination = Field(default_factory=LinkPagination)


class GraphqlPaginationConfig(PluginConfig):
    """GraphQL pagination.

    relay reads {hasNextPage, endCursor} from page_info_path, which defaults
    to "<data_path>.pageInfo". cursor reads end_cursor_path/has_next_page_path.
    offset continues while full pages come back.
    """

    style: GraphQLPaginationStyle
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)
    max_pages: int = Field(default=DEFAULT_MAX_PAGES, ge=1)
    page_info_path: str | None = None
    end_cursor_path: str | None = None
    has_next_page_path: str | None = None
