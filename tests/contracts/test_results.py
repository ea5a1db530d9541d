"""Tests for result dataclasses."""

import pytest

from sluice.contracts import (
    ConnectionTestResult,
    ErrorCode,
    FieldInfo,
    FieldType,
    FileFormat,
    FilePreview,
    ParseError,
    ParseResult,
    SourceError,
    SourceMetadata,
    SourceResult,
)


class TestSourceResult:
    def test_build_without_errors(self) -> None:
        result = SourceResult.build([{"id": 1}], [], SourceMetadata(pages_fetched=1))

        assert result.success is True
        assert result.total == 1

    def test_build_with_errors_keeps_records(self) -> None:
        error = SourceError(code=ErrorCode.HTTP_ERROR, message="HTTP 503", retryable=True)

        result = SourceResult.build([{"id": 1}], [error])

        assert result.success is False
        assert result.records == [{"id": 1}]

    def test_failure(self) -> None:
        error = SourceError(code=ErrorCode.FILE_ACCESS_ERROR, message="denied", retryable=False)

        result = SourceResult.failure(error)

        assert result.success is False
        assert result.records == []
        assert result.total == 0
        assert result.errors == [error]

    def test_to_dict(self) -> None:
        error = SourceError(code=ErrorCode.TIMEOUT, message="slow", retryable=True)
        result = SourceResult.build([], [error], SourceMetadata(has_more=True, pages_fetched=0))

        assert result.to_dict() == {
            "success": False,
            "records": [],
            "total": 0,
            "errors": [{"code": "TIMEOUT", "message": "slow", "retryable": True}],
            "metadata": {"has_more": True, "pages_fetched": 0},
        }

    def test_to_dict_omits_empty_parts(self) -> None:
        assert SourceResult.build([{"a": 1}], []).to_dict() == {"success": True, "records": [{"a": 1}], "total": 1}

    def test_error_details(self) -> None:
        error = SourceError(code=ErrorCode.PARSE_ERROR, message="bad", retryable=False, details={"row": 3})

        assert error.to_dict()["details"] == {"row": 3}


class TestParseResult:
    def test_total_rows_must_match(self) -> None:
        with pytest.raises(ValueError, match="total_rows"):
            ParseResult(success=True, format=FileFormat.CSV, records=[{"a": 1}], fields=["a"], total_rows=2)

    def test_records_must_be_dicts(self) -> None:
        with pytest.raises(TypeError, match="record 0 is list"):
            ParseResult(success=True, format=FileFormat.JSON, records=[[1]], fields=[], total_rows=1)  # type: ignore[list-item]

    def test_failed(self) -> None:
        result = ParseResult.failed(FileFormat.JSON, "Invalid JSON", code="INVALID_JSON")

        assert result.success is False
        assert result.to_dict()["errors"] == [{"message": "Invalid JSON", "code": "INVALID_JSON"}]
        assert result.to_dict()["format"] == "json"

    def test_parse_error_omits_unset(self) -> None:
        assert ParseError(message="short row", row=4).to_dict() == {"message": "short row", "row": 4}


def test_file_preview_to_dict() -> None:
    info = FieldInfo(key="unitPrice", label="Unit Price", type=FieldType.NUMBER, sample_values=[1], null_count=0, unique_count=1)
    preview = FilePreview(format=FileFormat.CSV, fields=[info], sample_data=[{"unitPrice": 1}], total_rows=1, warnings=[])

    payload = preview.to_dict()

    assert payload["format"] == "csv"
    assert payload["fields"][0] == {
        "key": "unitPrice",
        "label": "Unit Price",
        "type": "number",
        "sample_values": [1],
        "null_count": 0,
        "unique_count": 1,
    }


def test_connection_test_result() -> None:
    assert ConnectionTestResult(success=True, message="ok").to_dict() == {"success": True, "message": "ok"}
