"""Tests for the sluice CLI."""

import json
import logging
from collections.abc import Iterator
from pathlib import Path

import pytest
from click.testing import Result
from typer.testing import CliRunner

from sluice import __version__
from sluice.cli import EXIT_CONFIG_ERROR, EXIT_FAILED, app

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_logging() -> Iterator[None]:
    """The CLI points the root handler at the runner's stderr; put it back."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def products_csv(tmp_path: Path) -> Path:
    path = tmp_path / "products.csv"
    path.write_text("sku,price\nA-1,9.5\nB-2,3\n")
    return path


def _settings(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "settings.yaml"
    path.write_text(body)
    return path


def _invoke(*args: str) -> Result:
    return runner.invoke(app, ["--no-dotenv", *args])


def test_version() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert f"sluice version {__version__}" in result.output


class TestParse:
    def test_csv(self, products_csv: Path) -> None:
        result = _invoke("parse", str(products_csv))

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["success"] is True
        assert payload["format"] == "csv"
        assert payload["records"] == [{"sku": "A-1", "price": "9.5"}, {"sku": "B-2", "price": "3"}]

    def test_tab_delimiter(self, tmp_path: Path) -> None:
        path = tmp_path / "data.txt"
        path.write_text("a\tb\n1\t2\n")

        result = _invoke("parse", str(path), "--format-hint", "csv", "--delimiter", "\\t")

        assert result.exit_code == 0
        assert json.loads(result.stdout)["records"] == [{"a": "1", "b": "2"}]

    def test_json_path(self, tmp_path: Path) -> None:
        path = tmp_path / "feed.json"
        path.write_text('{"data": {"items": [{"id": 1}]}}')

        result = _invoke("parse", str(path), "--json-path", "data.items")

        assert json.loads(result.stdout)["records"] == [{"id": 1}]

    def test_xml_record_path(self, tmp_path: Path) -> None:
        path = tmp_path / "feed.xml"
        path.write_text("<catalog><product><id>1</id></product></catalog>")

        result = _invoke("parse", str(path), "--record-path", "//catalog/product")

        assert json.loads(result.stdout)["records"] == [{"id": 1}]

    def test_parse_failure_exits_1(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{nope")

        result = _invoke("parse", str(path))

        assert result.exit_code == EXIT_FAILED
        assert json.loads(result.stdout)["success"] is False

    def test_missing_file_exits_2(self, tmp_path: Path) -> None:
        result = _invoke("parse", str(tmp_path / "missing.csv"))

        assert result.exit_code == EXIT_CONFIG_ERROR

    def test_invalid_delimiter_exits_2(self, products_csv: Path) -> None:
        result = _invoke("parse", str(products_csv), "--delimiter", ";;")

        assert result.exit_code == EXIT_CONFIG_ERROR


class TestPreview:
    def test_console(self, products_csv: Path) -> None:
        result = _invoke("preview", str(products_csv), "--rows", "1")

        assert result.exit_code == 0
        assert "Format: csv  Rows: 1" in result.output
        assert "sku" in result.output
        assert "number" in result.output

    def test_json(self, products_csv: Path) -> None:
        result = _invoke("preview", str(products_csv), "--format", "json")

        payload = json.loads(result.stdout)
        assert payload["total_rows"] == 2
        assert [f["key"] for f in payload["fields"]] == ["sku", "price"]


def test_plugins_lists_every_variant() -> None:
    result = _invoke("plugins")

    assert result.exit_code == 0
    for name in ("rest_api", "graphql_api", "local_file", "remote_file", "sql_database", "csv", "json", "xml", "xlsx"):
        assert name in result.output


class TestFetch:
    def test_local_file(self, tmp_path: Path, products_csv: Path) -> None:
        settings = _settings(tmp_path, f"source:\n  type: local_file\n  options:\n    path: {products_csv}\n")

        result = _invoke("fetch", "--settings", str(settings))

        assert result.exit_code == 0
        assert "OK: 2 record(s) from local_file" in result.output
        assert '{"sku": "A-1", "price": "9.5"}' in result.output

    def test_json_with_limit(self, tmp_path: Path, products_csv: Path) -> None:
        settings = _settings(tmp_path, f"source:\n  type: local_file\n  options:\n    path: {products_csv}\n")

        result = _invoke("fetch", "--settings", str(settings), "--format", "json", "--limit", "1")

        payload = json.loads(result.stdout)
        assert payload["total"] == 2
        assert payload["records"] == [{"sku": "A-1", "price": "9.5"}]
        assert payload["metadata"]["files_read"] == 1

    def test_source_failure_exits_1(self, tmp_path: Path) -> None:
        settings = _settings(tmp_path, f"source:\n  type: local_file\n  options:\n    path: {tmp_path / 'missing.csv'}\n")

        result = _invoke("fetch", "--settings", str(settings))

        assert result.exit_code == EXIT_FAILED
        assert "FAILED: 0 record(s)" in result.output
        assert "[FILE_ACCESS_ERROR] (terminal)" in result.output

    def test_invalid_source_options_exit_2(self, tmp_path: Path) -> None:
        settings = _settings(tmp_path, "source:\n  type: local_file\n  options:\n    pattern: '*.csv'\n")

        result = _invoke("fetch", "--settings", str(settings))

        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "Invalid configuration for LocalFileSourceConfig" in result.output

    def test_invalid_settings_exit_2(self, tmp_path: Path) -> None:
        settings = _settings(tmp_path, "source:\n  type: carrier_pigeon\n")

        result = _invoke("fetch", "--settings", str(settings))

        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "source.type" in result.output

    def test_missing_settings_exit_2(self, tmp_path: Path) -> None:
        result = _invoke("fetch", "--settings", str(tmp_path / "nope.yaml"))

        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "Settings file not found" in result.output

    def test_yaml_syntax_error_exit_2(self, tmp_path: Path) -> None:
        settings = _settings(tmp_path, "source:\n  type: [local_file\n")

        result = _invoke("fetch", "--settings", str(settings))

        assert result.exit_code == EXIT_CONFIG_ERROR


class TestConnectionCommand:
    def test_ok(self, tmp_path: Path, products_csv: Path) -> None:
        settings = _settings(tmp_path, f"source:\n  type: local_file\n  options:\n    path: {products_csv}\n")

        result = _invoke("test", "--settings", str(settings))

        assert result.exit_code == 0
        assert "OK: File accessible" in result.output

    def test_failed(self, tmp_path: Path) -> None:
        settings = _settings(tmp_path, f"source:\n  type: local_file\n  options:\n    path: {tmp_path / 'gone'}\n")

        result = _invoke("test", "--settings", str(settings))

        assert result.exit_code == EXIT_FAILED
        assert "FAILED:" in result.output


def test_show_config_redacts_secrets(tmp_path: Path) -> None:
    settings = _settings(
        tmp_path,
        "source:\n"
        "  type: rest_api\n"
        "  options:\n"
        "    base_url: https://api.example.com\n"
        "    auth:\n"
        "      type: bearer\n"
        "      token: very-secret\n",
    )

    result = _invoke("show-config", "--settings", str(settings))

    assert result.exit_code == 0
    assert "very-secret" not in result.output
    assert "token: '***'" in result.output
    assert "base_url: https://api.example.com" in result.output
