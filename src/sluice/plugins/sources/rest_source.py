# src/sluice/plugins/sources/rest_source.py
"""REST API source with offset, cursor, page-number and Link-header pagination.

Pages are fetched strictly in order on one httpx.Client. The loop runs
while the server reports more data and fewer than max_pages requests have
been made. The first failure (transport error, non-2xx status, body that
is not JSON) is recorded as one classified SourceError and ends the loop;
records from earlier pages are still returned.
"""

from dataclasses import dataclass
from typing import Any, Literal

import httpx
from pydantic import Field, model_validator

from sluice.contracts import (
    ConnectionTestResult,
    PaginationStrategy,
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
    join_url,
    new_client,
    parse_json_strict,
    redact_url,
)
from sluice.plugins.sources.pagination import DEFAULT_MAX_PAGES, DEFAULT_PAGE_SIZE, PaginationConfig
from sluice.plugins.utils import navigate_path

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


class RestApiSourceConfig(PluginConfig):
    """Configuration for the REST API source.

    Example:
        base_url: https://api.example.com
        endpoint: /v1/products
        data_path: data.items
        pagination:
          strategy: offset
          page_size: 50
          offset: {total_path: meta.total}
    """

    base_url: str
    endpoint: str = ""
    method: Literal["GET", "POST", "PUT", "PATCH"] = "GET"
    headers: dict[str, str] = Field(default_factory=dict)
    params: dict[str, str | int | float | bool] = Field(default_factory=dict)
    body: dict[str, Any] | None = None
    auth: AuthConfig | None = None
    pagination: PaginationConfig | None = None
    timeout: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    data_path: str | None = None

    @model_validator(mode="after")
    def validate_body_method(self) -> "RestApiSourceConfig":
        if self.body is not None and self.method == "GET":
            raise ValueError("body requires method POST, PUT or PATCH")
        return self

    @property
    def url(self) -> str:
        return join_url(self.base_url, self.endpoint)


@dataclass(frozen=True)
class PageState:
    """Where the next request starts. Local to one fetch() call."""

    page_count: int = 0
    offset: int = 0
    cursor: str | None = None
    next_url: str | None = None


@dataclass(frozen=True)
class NextPage:
    has_more: bool
    cursor: str | None = None
    next_url: str | None = None


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _query_value(value: str | int | float | bool) -> str:
    # JSON-style booleans on the wire
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_params(cfg: RestApiSourceConfig, state: PageState, page_size: int) -> dict[str, str]:
    """Query parameters for one request: configured, then pagination, then auth."""
    params = {key: _query_value(value) for key, value in cfg.params.items()}
    pagination = cfg.pagination

    if pagination is not None:
        match pagination.strategy:
            case PaginationStrategy.OFFSET:
                params[pagination.offset.offset_param] = str(state.offset)
                params[pagination.offset.limit_param] = str(page_size)
            case PaginationStrategy.CURSOR:
                if state.cursor is not None:
                    params[pagination.cursor.cursor_param] = state.cursor
                params[pagination.cursor.limit_param] = str(page_size)
            case PaginationStrategy.PAGE:
                params[pagination.page.page_param] = str(state.page_count + 1)
                params[pagination.page.per_page_param] = str(page_size)
            case PaginationStrategy.LINK:
                pass

    params.update(build_auth_params(cfg.auth))
    return params


def next_page(
    pagination: PaginationConfig | None,
    body: Any,
    response: httpx.Response,
    *,
    page_records: int,
    fetched_total: int,
    page_number: int,
) -> NextPage:
    """Decide whether another page exists, per strategy.

    offset: with total_path, more while fetched_total < total; otherwise
        more while the page was full. An exactly full last page therefore
        costs one extra, empty request.
    cursor: next cursor from cursor_path; more per has_next_path, or while
        a cursor is present.
    page:   with total_pages_path, more while page_number < total pages;
        otherwise more while the page was full.
    link:   more while the Link header has rel="next".
    """
    if pagination is None:
        return NextPage(has_more=False)

    page_size = pagination.page_size
    match pagination.strategy:
        case PaginationStrategy.OFFSET:
            if page_records == 0:
                return NextPage(has_more=False)
            total_path = pagination.offset.total_path
            if total_path:
                total = _as_number(navigate_path(body, total_path))
                return NextPage(has_more=total is not None and fetched_total < total)
            return NextPage(has_more=page_records >= page_size)

        case PaginationStrategy.CURSOR:
            cursor_path = pagination.cursor.cursor_path
            raw_cursor = navigate_path(body, cursor_path) if cursor_path else None
            cursor = None if raw_cursor is None or raw_cursor == "" else str(raw_cursor)
            has_next_path = pagination.cursor.has_next_path
            has_next = bool(navigate_path(body, has_next_path)) if has_next_path else cursor is not None
            if has_next and cursor is None:
                logger.warning("Server reported more pages without a cursor; stopping", cursor_path=cursor_path)
                return NextPage(has_more=False)
            return NextPage(has_more=has_next, cursor=cursor)

        case PaginationStrategy.PAGE:
            if page_records == 0:
                return NextPage(has_more=False)
            total_pages_path = pagination.page.total_pages_path
            if total_pages_path:
                total_pages = _as_number(navigate_path(body, total_pages_path))
                return NextPage(has_more=total_pages is not None and page_number < total_pages)
            return NextPage(has_more=page_records >= page_size)

        case PaginationStrategy.LINK:
            next_link = response.links.get("next")
            if next_link is None or not next_link.get("url"):
                return NextPage(has_more=False)
            return NextPage(has_more=True, next_url=str(response.url.join(next_link["url"])))


class RestApiSource(BaseSource[RestApiSourceConfig]):
    """Fetch records from a paginated REST API.

    Config options:
        base_url, endpoint: Request URL (endpoint may be absolute)
        method: GET (default), POST, PUT or PATCH
        headers, params, body: Sent with every request
        auth: basic, bearer or api_key credentials
        pagination: offset | cursor | page | link (see PaginationConfig)
        timeout: Per-request timeout in seconds (default 30)
        data_path: Path to the record array in the response body
    """

    source_type = SourceType.REST_API
    config_model = RestApiSourceConfig

    def fetch(self, config: RestApiSourceConfig | dict[str, Any]) -> SourceResult:
        cfg = self.coerce_config(config)
        pagination = cfg.pagination
        max_pages = pagination.max_pages if pagination is not None else DEFAULT_MAX_PAGES
        page_size = pagination.page_size if pagination is not None else DEFAULT_PAGE_SIZE
        headers = build_auth_headers(cfg.headers, cfg.auth)

        records: list[Record] = []
        errors: list[SourceError] = []
        state = PageState()
        has_more = True

        with new_client(cfg.timeout) as client:
            while has_more and state.page_count < max_pages:
                if state.next_url is not None:
                    url, params = state.next_url, build_auth_params(cfg.auth)
                else:
                    url, params = cfg.url, build_params(cfg, state, page_size)

                try:
                    response = client.request(cfg.method, url, params=params, headers=headers, json=cfg.body)
                except Exception as e:
                    errors.append(classify_transport_error(e))
                    break

                if not response.is_success:
                    errors.append(classify_status(response))
                    break

                body, parse_error = parse_json_strict(response.text)
                if parse_error is not None:
                    errors.append(body_parse_error(parse_error))
                    break

                value = navigate_path(body, cfg.data_path) if cfg.data_path else body
                page_records = coerce_records(value)
                records.extend(page_records)

                page_number = state.page_count + 1
                decision = next_page(
                    pagination,
                    body,
                    response,
                    page_records=len(page_records),
                    fetched_total=len(records),
                    page_number=page_number,
                )
                logger.debug(
                    "Fetched page",
                    url=redact_url(url),
                    page=page_number,
                    records=len(page_records),
                    has_more=decision.has_more,
                )
                has_more = decision.has_more
                state = PageState(
                    page_count=page_number,
                    offset=state.offset + len(page_records),
                    cursor=decision.cursor,
                    next_url=decision.next_url,
                )

        for error in errors:
            logger.warning("REST fetch stopped", code=str(error.code), retryable=error.retryable, records=len(records))

        return SourceResult.build(
            records,
            errors,
            SourceMetadata(has_more=has_more, next_cursor=state.cursor, pages_fetched=state.page_count),
        )

    def test(self, config: RestApiSourceConfig | dict[str, Any]) -> ConnectionTestResult:
        """Request a single record to confirm the endpoint answers."""
        cfg = self.coerce_config(config)
        headers = build_auth_headers(cfg.headers, cfg.auth)
        try:
            with new_client(cfg.timeout) as client:
                response = client.request(
                    cfg.method,
                    cfg.url,
                    params=build_params(cfg, PageState(), page_size=1),
                    headers=headers,
                    json=cfg.body,
                )
        except httpx.HTTPError as e:
            return ConnectionTestResult(success=False, message=classify_transport_error(e).message)

        if not response.is_success:
            return ConnectionTestResult(success=False, message=classify_status(response).message)
        return ConnectionTestResult(success=True, message="API is accessible")
