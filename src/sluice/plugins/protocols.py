# src/sluice/plugins/protocols.py
"""Protocols defining the contracts for sources and parsers.

These protocols define what methods implementations must provide.
They're used for type checking and for registration checks in the
PluginManager, not for behavior.

Plugin Types:
- DataSource: Retrieves raw data and returns a SourceResult
- FormatParser: Turns file content into a ParseResult, and back
"""

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from sluice.contracts import ConnectionTestResult, FileFormat, ParseResult, Record, SourceResult, SourceType
    from sluice.plugins.parsers.options import ParseOptions


@runtime_checkable
class DataSourceProtocol(Protocol):
    """Protocol for data sources.

    Implementations are stateless: all per-call state (page counter,
    cursor, offset) lives in local variables of fetch(), so one instance
    can serve concurrent calls.

    fetch() and test() accept a validated config model or a plain dict.
    Expected failures are reported inside the returned result, never raised.

    Example:
        class LocalFileSource:
            source_type = SourceType.LOCAL_FILE
            config_model = LocalFileSourceConfig

            def fetch(self, config):
                cfg = self.config_model.coerce(config)
                ...
                return SourceResult.build(records, errors, metadata)
    """

    source_type: "SourceType"
    config_model: type[Any]

    def fetch(self, config: Any) -> "SourceResult":
        """Retrieve all records the config describes."""
        ...

    def test(self, config: Any) -> "ConnectionTestResult":
        """Check reachability without a full fetch."""
        ...

    def describe(self, config: Any) -> dict[str, Any]:
        """Fetch and report the discovered field names and metadata."""
        ...


@runtime_checkable
class FormatParserProtocol(Protocol):
    """Protocol for file format parsers.

    parse() never raises for malformed content; problems are reported in
    ParseResult.errors/warnings. generate() is the inverse: records parsed
    from generate() output match the input up to the format's fidelity.
    """

    format: "FileFormat"

    def parse(self, content: str | bytes, options: "ParseOptions | None" = None) -> "ParseResult":
        """Parse raw content into records."""
        ...

    def generate(self, records: list["Record"], options: "ParseOptions | None" = None) -> str | bytes:
        """Serialize records into this format."""
        ...
