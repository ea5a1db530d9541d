# src/sluice/plugins/sources/local_file_source.py
"""Local file source: one file, or every matching file of a directory.

Directory mode reads files in sorted-name order. A file that cannot be
read is reported as FILE_READ_ERROR and skipped; the others still load.
A path that cannot be accessed at all is fatal and yields no records.
"""

import codecs
import os
import re
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator

from sluice.contracts import (
    ConnectionTestResult,
    ErrorCode,
    Record,
    SourceError,
    SourceMetadata,
    SourceResult,
    SourceType,
)
from sluice.core.logging import get_logger
from sluice.plugins.config_base import PathConfig
from sluice.plugins.parsers.excel_parser import is_excel_file
from sluice.plugins.parsers.options import ParseOptions
from sluice.plugins.parsers.service import FileParserService
from sluice.plugins.sources.base import BaseSource, parse_error_to_source_error
from sluice.plugins.utils import decode_content

logger = get_logger(__name__)

# Extensions read from a directory when no pattern is configured
DATA_FILE_EXTENSIONS = frozenset({".csv", ".json", ".xml", ".xlsx", ".xls", ".tsv"})


class LocalFileSourceConfig(PathConfig):
    """Configuration for the local file source.

    Example:
        path: ./exports
        pattern: "products_*.csv"
        encoding: latin-1
        parse: {csv: {delimiter: ";"}}
    """

    pattern: str | None = None
    encoding: str = "utf-8"
    parse: ParseOptions = Field(default_factory=ParseOptions)

    @field_validator("encoding")
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        try:
            codecs.lookup(v)
        except LookupError:
            raise ValueError(f"unknown encoding: {v}") from None
        return v


def pattern_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate a simple glob ("*" and "?" only) into an anchored, case-insensitive regex."""
    escaped = re.escape(pattern).replace(r"\*", ".*").replace(r"\?", ".")
    return re.compile(f"^{escaped}$", re.IGNORECASE)


def matching_files(directory: Path, pattern: str | None) -> list[Path]:
    """Regular files of directory accepted by pattern (or the data-file extensions), sorted by name.

    Raises:
        OSError: If the directory cannot be listed.
    """
    regex = pattern_to_regex(pattern) if pattern else None
    files = []
    for entry in directory.iterdir():
        if not entry.is_file():
            continue
        if regex is not None:
            if regex.match(entry.name):
                files.append(entry)
        elif entry.suffix.lower() in DATA_FILE_EXTENSIONS:
            files.append(entry)
    return sorted(files, key=lambda p: p.name)


class LocalFileSource(BaseSource[LocalFileSourceConfig]):
    """Read and parse files from the local filesystem.

    Relative paths resolve against base_dir when one is given.
    """

    source_type = SourceType.LOCAL_FILE
    config_model = LocalFileSourceConfig
    parses_files = True

    def __init__(self, parser_service: FileParserService | None = None, base_dir: Path | None = None) -> None:
        self._parser = parser_service or FileParserService()
        self._base_dir = base_dir

    def _read_file(self, file_path: Path, cfg: LocalFileSourceConfig) -> tuple[list[Record], list[SourceError]]:
        raw = file_path.read_bytes()
        content: str | bytes = raw if is_excel_file(raw) else decode_content(raw, cfg.encoding)
        options = cfg.parse.model_copy(update={"csv": cfg.parse.csv.model_copy(update={"encoding": cfg.encoding})})
        result = self._parser.parse(content, options, filename=file_path.name)

        errors = [parse_error_to_source_error(e, file_path.name) for e in result.errors]
        logger.debug("Parsed file", file=file_path.name, format=str(result.format), records=result.total_rows)
        return result.records, errors

    def fetch(self, config: LocalFileSourceConfig | dict[str, Any]) -> SourceResult:
        cfg = self.coerce_config(config)
        path = cfg.resolved_path(self._base_dir)

        try:
            is_directory = path.is_dir()
            if is_directory:
                files = matching_files(path, cfg.pattern)
            else:
                path.stat()
                files = [path]
        except OSError as e:
            logger.warning("Cannot access path", path=str(path), error=str(e))
            return SourceResult.failure(
                SourceError(
                    code=ErrorCode.FILE_ACCESS_ERROR,
                    message=str(e) or f"Failed to access {path}",
                    retryable=False,
                    details={"path": str(path)},
                )
            )

        records: list[Record] = []
        errors: list[SourceError] = []
        files_read = 0
        for file_path in files:
            try:
                file_records, file_errors = self._read_file(file_path, cfg)
            except Exception as e:
                logger.warning("Skipping unreadable file", file=file_path.name, error=str(e))
                errors.append(
                    SourceError(
                        code=ErrorCode.FILE_READ_ERROR,
                        message=f"Failed to read {file_path}: {e}",
                        retryable=False,
                        details={"file": file_path.name},
                    )
                )
                continue
            files_read += 1
            records.extend(file_records)
            errors.extend(file_errors)

        return SourceResult.build(records, errors, SourceMetadata(filename=path.name, files_read=files_read))

    def test(self, config: LocalFileSourceConfig | dict[str, Any]) -> ConnectionTestResult:
        """Check readability; report the match count or the file size."""
        cfg = self.coerce_config(config)
        path = cfg.resolved_path(self._base_dir)
        try:
            stats = path.stat()
            if not os.access(path, os.R_OK):
                return ConnectionTestResult(success=False, message=f"Permission denied: {path}")
            if path.is_dir():
                files = matching_files(path, cfg.pattern)
                return ConnectionTestResult(success=True, message=f"Found {len(files)} matching file(s)")
        except OSError as e:
            return ConnectionTestResult(success=False, message=str(e))
        return ConnectionTestResult(success=True, message=f"File accessible ({stats.st_size} bytes)")
