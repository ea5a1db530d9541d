# src/sluice/plugins/sources/remote_file_source.py
"""Remote file source: download one file over HTTP(S) and parse it."""

from typing import Any, Literal
from urllib.parse import unquote, urlsplit

import httpx
from pydantic import Field

from sluice.contracts import ConnectionTestResult, ErrorCode, FileFormat, SourceError, SourceMetadata, SourceResult, SourceType
from sluice.core.logging import get_logger
from sluice.plugins.config_base import PluginConfig
from sluice.plugins.parsers.options import ParseOptions
from sluice.plugins.parsers.service import FileParserService
from sluice.plugins.sources.auth import AuthConfig, build_auth_headers, build_auth_params
from sluice.plugins.sources.base import BaseSource, parse_error_to_source_error
from sluice.plugins.sources.http import classify_status, classify_transport_error, new_client, redact_url

logger = get_logger(__name__)


class RemoteFileSourceConfig(PluginConfig):
    """Configuration for the remote file source.

    parse.format overrides the format guessed from the Content-Type header.
    """

    url: str
    method: Literal["GET", "POST"] = "GET"
    headers: dict[str, str] = Field(default_factory=dict)
    auth: AuthConfig | None = None
    timeout: float = Field(default=30.0, gt=0)
    parse: ParseOptions = Field(default_factory=ParseOptions)


def format_from_content_type(content_type: str) -> FileFormat | None:
    """Map a Content-Type header to a format hint; None lets the parser sniff."""
    lower = content_type.lower()
    if "csv" in lower or "comma-separated" in lower:
        return FileFormat.CSV
    if "json" in lower:
        return FileFormat.JSON
    if "xml" in lower:
        return FileFormat.XML
    if "spreadsheet" in lower or "excel" in lower:
        return FileFormat.XLSX
    return None


def filename_from_url(url: str) -> str | None:
    segment = urlsplit(url).path.rstrip("/").rsplit("/", 1)[-1]
    return unquote(segment) or None


class RemoteFileSource(BaseSource[RemoteFileSourceConfig]):
    """Download and parse a CSV, JSON, XML or Excel file from a URL."""

    source_type = SourceType.REMOTE_FILE
    config_model = RemoteFileSourceConfig
    parses_files = True

    def __init__(self, parser_service: FileParserService | None = None) -> None:
        self._parser = parser_service or FileParserService()

    def fetch(self, config: RemoteFileSourceConfig | dict[str, Any]) -> SourceResult:
        cfg = self.coerce_config(config)
        try:
            with new_client(cfg.timeout) as client:
                response = client.request(
                    cfg.method,
                    cfg.url,
                    headers=build_auth_headers(cfg.headers, cfg.auth),
                    params=build_auth_params(cfg.auth),
                )
        except Exception as e:
            error = classify_transport_error(e)
            logger.warning("Remote file download failed", url=redact_url(cfg.url), code=str(error.code))
            return SourceResult.failure(error)

        if not response.is_success:
            error = classify_status(response)
            logger.warning("Remote file download failed", url=redact_url(cfg.url), status=response.status_code)
            return SourceResult.failure(error)

        content_type = response.headers.get("content-type", "")
        content = response.content
        filename = filename_from_url(str(response.url))

        options = cfg.parse
        if options.format is None:
            hint = format_from_content_type(content_type)
            if hint is not None:
                options = options.model_copy(update={"format": hint})

        try:
            result = self._parser.parse(content, options, filename=filename)
        except Exception as e:
            logger.warning("Parsing downloaded file failed", url=redact_url(cfg.url), error_type=type(e).__name__)
            return SourceResult.failure(
                SourceError(
                    code=ErrorCode.PARSE_ERROR,
                    message=f"Failed to parse {filename or 'response'}: {e}",
                    retryable=False,
                    details={"error_type": type(e).__name__},
                ),
                SourceMetadata(filename=filename, content_type=content_type, size=len(content)),
            )
        metadata = SourceMetadata(filename=filename, content_type=content_type, size=len(content))
        logger.debug(
            "Downloaded file",
            url=redact_url(cfg.url),
            format=str(result.format),
            size=len(content),
            records=result.total_rows,
        )
        return SourceResult(
            success=result.success,
            records=result.records,
            total=result.total_rows,
            errors=[parse_error_to_source_error(e, filename) for e in result.errors],
            metadata=metadata,
        )

    def test(self, config: RemoteFileSourceConfig | dict[str, Any]) -> ConnectionTestResult:
        """HEAD the URL and report type and size without downloading the body."""
        cfg = self.coerce_config(config)
        try:
            with new_client(cfg.timeout) as client:
                response = client.head(
                    cfg.url,
                    headers=build_auth_headers(cfg.headers, cfg.auth),
                    params=build_auth_params(cfg.auth),
                )
        except httpx.HTTPError as e:
            return ConnectionTestResult(success=False, message=classify_transport_error(e).message)

        if not response.is_success:
            return ConnectionTestResult(success=False, message=classify_status(response).message)

        content_type = response.headers.get("content-type")
        content_length = response.headers.get("content-length")
        size = f"{content_length} bytes" if content_length else "size unknown"
        return ConnectionTestResult(success=True, message=f"Accessible ({content_type}, {size})")
