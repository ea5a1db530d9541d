# src/sluice/plugins/sources/graphql_source.py
"""GraphQL API source with relay, cursor and offset pagination.

Every request is a POST of {"query", "variables"}. When pagination is
configured, every common variable name is set at once so that one config
works against varied schemas:

    after, cursor        current cursor (only once one is known)
    first, limit, take   page size
    skip, offset         page_count * page_size

A response carrying errors[] ends the loop with one GRAPHQL_ERROR per entry.
Records from earlier pages are kept.
"""

from dataclasses import dataclass
from typing import Any

import httpx
from pydantic import Field

from sluice.contracts import (
    ConnectionTestResult,
    ErrorCode,
    GraphQLPaginationStyle,
    Record,
    SourceError,
    SourceMetadata,
    SourceResult,
    SourceType,
)
from sluice.core.logging import get_logger
from sluice.plugins.config_base import PluginConfig
from sluice.plugins.sources.auth import AuthConfig, build_auth_headers, build_auth_params
from sluice.plugins.sources.base import BaseSource, coerce_records
from sluice.plugins.sources.http import (
    body_parse_error,
    classify_status,
    classify_transport_error,
    new_client,
    parse_json_strict,
    redact_url,
)
from sluice.plugins.sources.pagination import DEFAULT_MAX_PAGES, GraphqlPaginationConfig
from sluice.plugins.utils import navigate_path

logger = get_logger(__name__)

INTROSPECTION_QUERY = "query { __schema { queryType { name } } }"


class GraphqlApiSourceConfig(PluginConfig):
    """Configuration for the GraphQL API source.

    Example:
        url: https://shop.example.com/graphql
        query: |
          query Products($first: Int, $after: String) {
            products(first: $first, after: $after) {
              edges { node { id name } }
              pageInfo { hasNextPage endCursor }
            }
          }
        data_path: products
        pagination: {style: relay, page_size: 50}
    """

    url: str
    query: str = Field(min_length=1)
    variables: dict[str, Any] = Field(default_factory=dict)
    headers: dict[str, str] = Field(default_factory=dict)
    auth: AuthConfig | None = None
    data_path: str | None = None
    pagination: GraphqlPaginationConfig | None = None
    timeout: float = Field(default=30.0, gt=0)


@dataclass(frozen=True)
class GraphqlPage:
    has_more: bool
    cursor: str | None = None


def build_variables(
    base: dict[str, Any],
    *,
    cursor: str | None,
    page_size: int,
    offset: int,
) -> dict[str, Any]:
    """Merge pagination variables over the configured ones."""
    variables = dict(base)
    if cursor is not None:
        variables["after"] = cursor
        variables["cursor"] = cursor
    variables["first"] = page_size
    variables["limit"] = page_size
    variables["take"] = page_size
    variables["skip"] = offset
    variables["offset"] = offset
    return variables


def extract_records(data: Any, data_path: str | None) -> list[Record]:
    """Navigate to the record value and unwrap a relay connection if present."""
    value = navigate_path(data, data_path) if data_path else data
    if isinstance(value, dict) and isinstance(value.get("edges"), list):
        value = [edge.get("node") for edge in value["edges"] if isinstance(edge, dict)]
    return coerce_records(value)


def _cursor_text(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def next_graphql_page(
    pagination: GraphqlPaginationConfig | None,
    data: Any,
    *,
    data_path: str | None,
    page_records: int,
) -> GraphqlPage:
    if pagination is None:
        return GraphqlPage(has_more=False)

    full_page = page_records >= pagination.page_size
    match pagination.style:
        case GraphQLPaginationStyle.RELAY:
            default_path = f"{data_path}.pageInfo" if data_path else "pageInfo"
            page_info = navigate_path(data, pagination.page_info_path or default_path)
            if not isinstance(page_info, dict):
                # No pageInfo selected by the query
                return GraphqlPage(has_more=full_page)
            has_more = bool(page_info.get("hasNextPage", False))
            cursor = _cursor_text(page_info.get("endCursor"))
        case GraphQLPaginationStyle.CURSOR:
            cursor = _cursor_text(
                navigate_path(data, pagination.end_cursor_path) if pagination.end_cursor_path else None
            )
            if pagination.has_next_page_path:
                has_more = bool(navigate_path(data, pagination.has_next_page_path))
            else:
                has_more = cursor is not None
        case GraphQLPaginationStyle.OFFSET:
            return GraphqlPage(has_more=full_page and page_records > 0)

    if has_more and cursor is None:
        logger.warning("Server reported more pages without a cursor; stopping", style=str(pagination.style))
        return GraphqlPage(has_more=False)
    return GraphqlPage(has_more=has_more, cursor=cursor)


def graphql_errors(errors: list[Any]) -> list[SourceError]:
    """One non-retryable GRAPHQL_ERROR per entry of a response's errors[]."""
    result = []
    for entry in errors:
        if not isinstance(entry, dict):
            result.append(SourceError(code=ErrorCode.GRAPHQL_ERROR, message=str(entry), retryable=False))
            continue
        details = {key: entry[key] for key in ("locations", "path") if entry.get(key) is not None}
        result.append(
            SourceError(
                code=ErrorCode.GRAPHQL_ERROR,
                message=str(entry.get("message") or "GraphQL error"),
                retryable=False,
                details=details or None,
            )
        )
    return result


class GraphqlApiSource(BaseSource[GraphqlApiSourceConfig]):
    """Fetch records from a GraphQL endpoint."""

    source_type = SourceType.GRAPHQL_API
    config_model = GraphqlApiSourceConfig

    def _post(
        self,
        client: httpx.Client,
        cfg: GraphqlApiSourceConfig,
        query: str,
        variables: dict[str, Any],
    ) -> tuple[dict[str, Any] | None, list[SourceError]]:
        """Execute one query. Returns (response body, errors)."""
        try:
            response = client.post(
                cfg.url,
                json={"query": query, "variables": variables},
                headers=build_auth_headers(cfg.headers, cfg.auth),
                params=build_auth_params(cfg.auth),
            )
        except Exception as e:
            return None, [classify_transport_error(e)]

        if not response.is_success:
            return None, [classify_status(response)]

        body, parse_error = parse_json_strict(response.text)
        if parse_error is not None:
            return None, [body_parse_error(parse_error)]
        if not isinstance(body, dict):
            return None, [body_parse_error("GraphQL response is not a JSON object")]

        errors = body.get("errors")
        if isinstance(errors, list) and errors:
            return body, graphql_errors(errors)
        return body, []

    def fetch(self, config: GraphqlApiSourceConfig | dict[str, Any]) -> SourceResult:
        cfg = self.coerce_config(config)
        pagination = cfg.pagination
        max_pages = pagination.max_pages if pagination is not None else DEFAULT_MAX_PAGES

        records: list[Record] = []
        errors: list[SourceError] = []
        has_more = True
        page_count = 0
        cursor: str | None = None

        with new_client(cfg.timeout) as client:
            while has_more and page_count < max_pages:
                if pagination is not None:
                    variables = build_variables(
                        cfg.variables,
                        cursor=cursor,
                        page_size=pagination.page_size,
                        offset=page_count * pagination.page_size,
                    )
                else:
                    variables = dict(cfg.variables)

                body, page_errors = self._post(client, cfg, cfg.query, variables)
                if page_errors:
                    errors.extend(page_errors)
                    break

                data = body.get("data") if body is not None else None
                page_records = extract_records(data, cfg.data_path)
                records.extend(page_records)
                page_count += 1

                page = next_graphql_page(pagination, data, data_path=cfg.data_path, page_records=len(page_records))
                logger.debug(
                    "Fetched page",
                    url=redact_url(cfg.url),
                    page=page_count,
                    records=len(page_records),
                    has_more=page.has_more,
                )
                has_more = page.has_more
                cursor = page.cursor

        for error in errors:
            logger.warning("GraphQL fetch stopped", code=str(error.code), retryable=error.retryable, records=len(records))

        return SourceResult.build(
            records,
            errors,
            SourceMetadata(has_more=has_more, next_cursor=cursor, pages_fetched=page_count),
        )

    def test(self, config: GraphqlApiSourceConfig | dict[str, Any]) -> ConnectionTestResult:
        """Send an introspection query for the root query type name."""
        cfg = self.coerce_config(config)
        with new_client(cfg.timeout) as client:
            _, errors = self._post(client, cfg, INTROSPECTION_QUERY, {})
        if errors:
            return ConnectionTestResult(success=False, message=errors[0].message)
        return ConnectionTestResult(success=True, message="GraphQL endpoint is accessible")
