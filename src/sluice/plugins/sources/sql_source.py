# src/sluice/plugins/sources/sql_source.py
"""SQL database source.

Runs one text query with bound parameters through SQLAlchemy Core and
returns each row as a record keyed by column name. Any database URL that
SQLAlchemy has a dialect and installed driver for is accepted.
"""

from typing import Any

from pydantic import Field
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import ArgumentError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from sluice.contracts import ConnectionTestResult, ErrorCode, Record, SourceError, SourceResult, SourceType
from sluice.core.logging import get_logger
from sluice.plugins.config_base import PluginConfig
from sluice.plugins.sources.base import BaseSource

logger = get_logger(__name__)


class SqlDatabaseSourceConfig(PluginConfig):
    """Configuration for the SQL database source.

    Example:
        url: postgresql+psycopg://etl:${DB_PASSWORD}@db/shop
        query: SELECT id, sku, price FROM products WHERE updated_at > :since
        params: {since: "2024-01-01"}
    """

    url: str
    query: str = Field(min_length=1)
    params: dict[str, Any] = Field(default_factory=dict)


def safe_url(url: str) -> str:
    """Database URL with the password masked, for logs and error details."""
    try:
        return make_url(url).render_as_string(hide_password=True)
    except ArgumentError:
        return "<invalid url>"


def classify_database_error(error: Exception) -> SourceError:
    """Connection-level failures and pool timeouts are retryable; SQL errors are not."""
    return SourceError(
        code=ErrorCode.DATABASE_ERROR,
        message=str(error) or type(error).__name__,
        retryable=isinstance(error, (OperationalError, PoolTimeoutError)),
        details={"error_type": type(error).__name__},
    )


class SqlDatabaseSource(BaseSource[SqlDatabaseSourceConfig]):
    """Fetch records from a relational database with one query."""

    source_type = SourceType.SQL_DATABASE
    config_model = SqlDatabaseSourceConfig

    def _run(self, url: str, query: str, params: dict[str, Any]) -> list[Record]:
        engine: Engine = create_engine(url)
        try:
            with engine.connect() as conn:
                result = conn.execute(text(query), params)
                return [dict(row) for row in result.mappings()]
        finally:
            engine.dispose()

    def fetch(self, config: SqlDatabaseSourceConfig | dict[str, Any]) -> SourceResult:
        cfg = self.coerce_config(config)
        try:
            records = self._run(cfg.url, cfg.query, cfg.params)
        except (SQLAlchemyError, ImportError) as e:
            error = classify_database_error(e)
            logger.warning("Database query failed", url=safe_url(cfg.url), retryable=error.retryable, error=error.message)
            return SourceResult.failure(error)

        logger.debug("Database query complete", url=safe_url(cfg.url), records=len(records))
        return SourceResult.build(records, [])

    def test(self, config: SqlDatabaseSourceConfig | dict[str, Any]) -> ConnectionTestResult:
        cfg = self.coerce_config(config)
        try:
            self._run(cfg.url, "SELECT 1", {})
        except (SQLAlchemyError, ImportError) as e:
            return ConnectionTestResult(success=False, message=str(e) or type(e).__name__)
        return ConnectionTestResult(success=True, message=f"Connected to {make_url(cfg.url).get_backend_name()} database")
