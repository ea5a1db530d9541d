"""Tests for RestApiSource pagination, error handling and request building."""

import json
from typing import Any

import httpx
import pytest
import respx

from sluice.contracts import ErrorCode, PaginationStrategy
from sluice.plugins.config_base import PluginConfigError
from sluice.plugins.sources.pagination import PaginationConfig
from sluice.plugins.sources.rest_source import (
    PageState,
    RestApiSource,
    RestApiSourceConfig,
    build_params,
    next_page,
)

BASE_URL = "https://api.example.com"
ITEMS_URL = f"{BASE_URL}/v1/items"


def _items(count: int, start: int = 0) -> list[dict[str, Any]]:
    return [{"id": start + i} for i in range(count)]


def _config(**overrides: Any) -> dict[str, Any]:
    return {"base_url": BASE_URL, "endpoint": "/v1/items", **overrides}


class TestSinglePage:
    @respx.mock
    def test_records_at_data_path(self) -> None:
        respx.get(ITEMS_URL).mock(return_value=httpx.Response(200, json={"data": {"items": _items(2)}}))

        result = RestApiSource().fetch(_config(data_path="data.items"))

        assert result.success is True
        assert result.records == [{"id": 0}, {"id": 1}]
        assert result.total == 2
        assert result.metadata is not None
        assert result.metadata.has_more is False
        assert result.metadata.pages_fetched == 1

    @respx.mock
    def test_root_object_is_one_record(self) -> None:
        respx.get(ITEMS_URL).mock(return_value=httpx.Response(200, json={"id": 7}))

        assert RestApiSource().fetch(_config()).records == [{"id": 7}]

    @respx.mock
    def test_scalar_at_data_path_yields_nothing(self) -> None:
        respx.get(ITEMS_URL).mock(return_value=httpx.Response(200, json={"data": "maintenance"}))

        result = RestApiSource().fetch(_config(data_path="data"))

        assert result.success is True
        assert result.records == []

    @respx.mock
    def test_headers_params_and_auth_are_sent(self) -> None:
        route = respx.get(ITEMS_URL).mock(return_value=httpx.Response(200, json=[]))

        RestApiSource().fetch(
            _config(
                headers={"Accept": "application/json"},
                params={"active": True, "region": "eu"},
                auth={"type": "bearer", "token": "t0k"},
            )
        )

        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer t0k"
        assert request.headers["Accept"] == "application/json"
        assert request.url.params["active"] == "true"
        assert request.url.params["region"] == "eu"

    @respx.mock
    def test_post_body(self) -> None:
        route = respx.post(ITEMS_URL).mock(return_value=httpx.Response(200, json={"results": _items(1)}))

        result = RestApiSource().fetch(_config(method="POST", body={"filter": {"sku": "A"}}, data_path="results"))

        assert result.records == [{"id": 0}]
        assert json.loads(route.calls.last.request.content) == {"filter": {"sku": "A"}}

    def test_body_with_get_is_rejected(self) -> None:
        with pytest.raises(PluginConfigError):
            RestApiSource().fetch(_config(body={"a": 1}))


class TestOffsetPagination:
    @respx.mock
    def test_stops_at_max_pages(self) -> None:
        """Every page is full, so only max_pages bounds the loop."""
        route = respx.get(ITEMS_URL).mock(side_effect=lambda request: httpx.Response(200, json=_items(10)))
        config = _config(pagination={"strategy": "offset", "page_size": 10, "max_pages": 3})

        result = RestApiSource().fetch(config)

        assert route.call_count == 3
        assert len(result.records) == 30
        assert result.success is True
        assert result.metadata is not None
        assert result.metadata.has_more is True
        assert result.metadata.pages_fetched == 3
        assert [call.request.url.params["offset"] for call in route.calls] == ["0", "10", "20"]
        assert {call.request.url.params["limit"] for call in route.calls} == {"10"}

    @respx.mock
    def test_short_page_ends(self) -> None:
        route = respx.get(ITEMS_URL).mock(
            side_effect=[httpx.Response(200, json=_items(10)), httpx.Response(200, json=_items(4, 10))]
        )

        result = RestApiSource().fetch(_config(pagination={"strategy": "offset", "page_size": 10}))

        assert route.call_count == 2
        assert len(result.records) == 14
        assert result.metadata is not None
        assert result.metadata.has_more is False

    @respx.mock
    def test_exactly_full_last_page_costs_one_empty_request(self) -> None:
        route = respx.get(ITEMS_URL).mock(
            side_effect=[httpx.Response(200, json=_items(2)), httpx.Response(200, json=[])]
        )

        result = RestApiSource().fetch(_config(pagination={"strategy": "offset", "page_size": 2}))

        assert route.call_count == 2
        assert len(result.records) == 2

    @respx.mock
    def test_total_path(self) -> None:
        route = respx.get(ITEMS_URL).mock(
            side_effect=[
                httpx.Response(200, json={"data": _items(10), "meta": {"total": 25}}),
                httpx.Response(200, json={"data": _items(10, 10), "meta": {"total": 25}}),
                httpx.Response(200, json={"data": _items(5, 20), "meta": {"total": 25}}),
            ]
        )
        config = _config(
            data_path="data",
            pagination={"strategy": "offset", "page_size": 10, "offset": {"total_path": "meta.total"}},
        )

        result = RestApiSource().fetch(config)

        assert route.call_count == 3
        assert [r["id"] for r in result.records] == list(range(25))

    @respx.mock
    def test_custom_param_names(self) -> None:
        route = respx.get(ITEMS_URL).mock(return_value=httpx.Response(200, json=[]))
        config = _config(
            pagination={"strategy": "offset", "page_size": 5, "offset": {"offset_param": "skip", "limit_param": "take"}}
        )

        RestApiSource().fetch(config)

        params = route.calls.last.request.url.params
        assert params["skip"] == "0"
        assert params["take"] == "5"


class TestCursorPagination:
    @respx.mock
    def test_follows_cursor_until_null(self) -> None:
        route = respx.get(ITEMS_URL).mock(
            side_effect=[
                httpx.Response(200, json={"items": _items(10), "next": "abc"}),
                httpx.Response(200, json={"items": _items(5, 10), "next": None}),
            ]
        )
        config = _config(data_path="items", pagination={"strategy": "cursor", "cursor": {"cursor_path": "next"}})

        result = RestApiSource().fetch(config)

        assert route.call_count == 2
        assert len(result.records) == 15
        assert result.metadata is not None
        assert result.metadata.has_more is False
        assert result.metadata.next_cursor is None
        assert "cursor" not in route.calls[0].request.url.params
        assert route.calls[1].request.url.params["cursor"] == "abc"

    @respx.mock
    def test_has_next_without_cursor_stops(self) -> None:
        route = respx.get(ITEMS_URL).mock(
            return_value=httpx.Response(200, json={"items": _items(3), "more": True, "next": None})
        )
        config = _config(
            data_path="items",
            pagination={"strategy": "cursor", "cursor": {"cursor_path": "next", "has_next_path": "more"}},
        )

        result = RestApiSource().fetch(config)

        assert route.call_count == 1
        assert result.metadata is not None
        assert result.metadata.has_more is False

    @respx.mock
    def test_cursor_reported_when_max_pages_reached(self) -> None:
        respx.get(ITEMS_URL).mock(return_value=httpx.Response(200, json={"items": _items(1), "next": 42}))
        config = _config(
            data_path="items",
            pagination={"strategy": "cursor", "max_pages": 2, "cursor": {"cursor_path": "next"}},
        )

        result = RestApiSource().fetch(config)

        assert result.metadata is not None
        assert result.metadata.has_more is True
        assert result.metadata.next_cursor == "42"


class TestPagePagination:
    @respx.mock
    def test_total_pages(self) -> None:
        route = respx.get(ITEMS_URL).mock(
            side_effect=[
                httpx.Response(200, json={"rows": _items(2), "pages": 2}),
                httpx.Response(200, json={"rows": _items(2, 2), "pages": 2}),
            ]
        )
        config = _config(
            data_path="rows",
            pagination={"strategy": "page", "page_size": 2, "page": {"total_pages_path": "pages"}},
        )

        result = RestApiSource().fetch(config)

        assert route.call_count == 2
        assert [call.request.url.params["page"] for call in route.calls] == ["1", "2"]
        assert route.calls[0].request.url.params["per_page"] == "2"
        assert len(result.records) == 4


class TestLinkPagination:
    @respx.mock
    def test_follows_next_link(self) -> None:
        route = respx.get(ITEMS_URL).mock(
            side_effect=[
                httpx.Response(200, json=_items(2), headers={"Link": '</v1/items?page=2&size=2>; rel="next"'}),
                httpx.Response(200, json=_items(1, 2)),
            ]
        )
        config = _config(
            params={"size": 2},
            auth={"type": "api_key", "key": "api_key", "value": "s3cret", "in": "query"},
            pagination={"strategy": "link"},
        )

        result = RestApiSource().fetch(config)

        assert route.call_count == 2
        assert len(result.records) == 3
        second = route.calls[1].request.url.params
        assert second["page"] == "2"
        assert second["api_key"] == "s3cret"
        assert result.metadata is not None
        assert result.metadata.has_more is False


class TestFailures:
    @respx.mock
    def test_server_error_keeps_earlier_pages(self) -> None:
        respx.get(ITEMS_URL).mock(side_effect=[httpx.Response(200, json=_items(10)), httpx.Response(503)])

        result = RestApiSource().fetch(_config(pagination={"strategy": "offset", "page_size": 10}))

        assert result.success is False
        assert len(result.records) == 10
        assert len(result.errors) == 1
        assert result.errors[0].code == ErrorCode.HTTP_ERROR
        assert result.errors[0].retryable is True
        assert result.errors[0].details is not None
        assert result.errors[0].details["status"] == 503

    @pytest.mark.parametrize(("status", "retryable"), [(400, False), (404, False), (408, False), (429, True)])
    @respx.mock
    def test_status_classification(self, status: int, retryable: bool) -> None:
        respx.get(ITEMS_URL).mock(return_value=httpx.Response(status))

        result = RestApiSource().fetch(_config())

        assert result.errors[0].retryable is retryable

    @respx.mock
    def test_invalid_json_body(self) -> None:
        respx.get(ITEMS_URL).mock(return_value=httpx.Response(200, text="<html>maintenance</html>"))

        result = RestApiSource().fetch(_config())

        assert result.success is False
        assert result.errors[0].code == ErrorCode.PARSE_ERROR
        assert result.errors[0].retryable is False

    @respx.mock
    def test_excessively_nested_body(self) -> None:
        respx.get(ITEMS_URL).mock(return_value=httpx.Response(200, text="[" * 100_000 + "]" * 100_000))

        result = RestApiSource().fetch(_config())

        assert result.success is False
        assert result.records == []
        assert result.errors[0].code == ErrorCode.PARSE_ERROR
        assert result.errors[0].retryable is False

    @respx.mock
    def test_connection_error(self) -> None:
        respx.get(ITEMS_URL).mock(side_effect=httpx.ConnectError("connection refused"))

        result = RestApiSource().fetch(_config())

        assert result.records == []
        assert result.errors[0].code == ErrorCode.FETCH_ERROR
        assert result.errors[0].retryable is True

    @respx.mock
    def test_timeout(self) -> None:
        respx.get(ITEMS_URL).mock(side_effect=httpx.ReadTimeout("slow"))

        result = RestApiSource().fetch(_config())

        assert result.errors[0].code == ErrorCode.TIMEOUT
        assert result.errors[0].retryable is True


class TestConnectionTest:
    @respx.mock
    def test_accessible(self) -> None:
        route = respx.get(ITEMS_URL).mock(return_value=httpx.Response(200, json=[]))

        result = RestApiSource().test(_config(pagination={"strategy": "offset", "page_size": 50}))

        assert result.success is True
        assert result.message == "API is accessible"
        assert route.calls.last.request.url.params["limit"] == "1"

    @respx.mock
    def test_unauthorized(self) -> None:
        respx.get(ITEMS_URL).mock(return_value=httpx.Response(401))

        result = RestApiSource().test(_config())

        assert result.success is False
        assert result.message == "HTTP 401: Unauthorized"

    @respx.mock
    def test_unreachable(self) -> None:
        respx.get(ITEMS_URL).mock(side_effect=httpx.ConnectError("no route to host"))

        result = RestApiSource().test(_config())

        assert result.success is False
        assert result.message == "no route to host"


@respx.mock
def test_describe_reports_fields() -> None:
    respx.get(ITEMS_URL).mock(return_value=httpx.Response(200, json=[{"id": 1}, {"id": 2, "sku": "A"}]))

    description = RestApiSource().describe(_config())

    assert description["success"] is True
    assert description["fields"] == ["id", "sku"]
    assert description["total"] == 2
    assert description["metadata"]["pages_fetched"] == 1


class TestBuildParams:
    def test_order_configured_then_pagination_then_auth(self) -> None:
        cfg = RestApiSourceConfig.from_dict(
            _config(
                params={"offset": "ignored", "q": "shoes"},
                auth={"type": "api_key", "key": "q", "value": "key", "in": "query"},
                pagination={"strategy": "offset"},
            )
        )

        params = build_params(cfg, PageState(offset=30), page_size=15)

        assert params == {"offset": "30", "q": "key", "limit": "15"}

    def test_cursor_omitted_until_known(self) -> None:
        cfg = RestApiSourceConfig.from_dict(_config(pagination={"strategy": "cursor"}))

        assert build_params(cfg, PageState(), 10) == {"limit": "10"}
        assert build_params(cfg, PageState(cursor="c1"), 10) == {"cursor": "c1", "limit": "10"}

    def test_url_property(self) -> None:
        cfg = RestApiSourceConfig.from_dict({"base_url": "https://api.example.com/", "endpoint": "items"})

        assert cfg.url == "https://api.example.com/items"


class TestNextPage:
    RESPONSE = httpx.Response(200, request=httpx.Request("GET", ITEMS_URL))

    def _decide(self, strategy: PaginationStrategy, body: Any, page_records: int, **extra: Any) -> bool:
        pagination = PaginationConfig.from_dict({"strategy": strategy, "page_size": 10, **extra})
        return next_page(
            pagination, body, self.RESPONSE, page_records=page_records, fetched_total=page_records, page_number=1
        ).has_more

    def test_no_pagination(self) -> None:
        assert next_page(None, {}, self.RESPONSE, page_records=10, fetched_total=10, page_number=1).has_more is False

    def test_offset_empty_page(self) -> None:
        assert self._decide(PaginationStrategy.OFFSET, [], 0) is False

    def test_offset_missing_total(self) -> None:
        assert self._decide(PaginationStrategy.OFFSET, {}, 10, offset={"total_path": "meta.total"}) is False

    def test_page_full_without_total(self) -> None:
        assert self._decide(PaginationStrategy.PAGE, [], 10) is True
        assert self._decide(PaginationStrategy.PAGE, [], 9) is False

    def test_link_absent(self) -> None:
        assert self._decide(PaginationStrategy.LINK, [], 10) is False
