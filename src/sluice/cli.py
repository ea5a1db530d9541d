# src/sluice/cli.py
"""sluice Command Line Interface.

Entry point for the sluice CLI tool.

Exit codes:
    0  success
    1  the source or parser reported success=false
    2  invalid settings or source configuration
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

import typer
import yaml
from dynaconf.vendor.ruamel.yaml.parser import ParserError as YamlParserError
from dynaconf.vendor.ruamel.yaml.scanner import ScannerError as YamlScannerError
from pydantic import ValidationError

from sluice import __version__
from sluice.contracts import FileFormat
from sluice.core.config import SluiceSettings, load_settings, resolve_config
from sluice.plugins.config_base import PluginConfigError

if TYPE_CHECKING:
    from sluice.plugins.manager import PluginManager
    from sluice.plugins.parsers.options import ParseOptions

__all__ = ["app"]

EXIT_FAILED = 1
EXIT_CONFIG_ERROR = 2

# Module-level singleton for plugin manager
_plugin_manager_cache: PluginManager | None = None


def _get_plugin_manager() -> PluginManager:
    """Get initialized plugin manager (singleton).

    Returns:
        PluginManager with all built-in sources and parsers registered
    """
    global _plugin_manager_cache

    from sluice.plugins.manager import PluginManager

    if _plugin_manager_cache is None:
        manager = PluginManager()
        manager.register_builtin_plugins()
        _plugin_manager_cache = manager
    return _plugin_manager_cache


app = typer.Typer(
    name="sluice",
    help="sluice: extract and normalize records from APIs and files.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"sluice version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from .env file.

    Args:
        env_file: Explicit path to .env file. If None, searches for .env
                 in current directory and parent directories.

    Returns:
        True if .env was found and loaded, False otherwise.

    Raises:
        typer.Exit: If explicit env_file path doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(f"Error: .env file not found: {env_file}", fg=typer.colors.RED, err=True)
            raise typer.Exit(EXIT_CONFIG_ERROR)
        return load_dotenv(env_file, override=False)

    return load_dotenv(override=False)


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(False, "--no-dotenv", help="Skip loading .env file."),
    env_file: Path | None = typer.Option(None, "--env-file", help="Path to .env file (skips automatic search)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose/debug logging."),
    json_logs: bool = typer.Option(False, "--json-logs", help="Output structured JSON logs."),
) -> None:
    """sluice: extract and normalize records from APIs and files."""
    from sluice.core.logging import configure_logging

    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "WARNING")
    ctx.obj = {"verbose": verbose, "json_logs": json_logs}

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho("Warning: --env-file ignored because --no-dotenv is set.", fg=typer.colors.YELLOW, err=True)


def _load_settings_or_exit(ctx: typer.Context, settings: str) -> SluiceSettings:
    """Load the settings file, reporting problems and exiting with code 2.

    Logging is reconfigured from the file unless --verbose/--json-logs were given.
    """
    from sluice.core.logging import configure_logging

    try:
        config = load_settings(Path(settings).expanduser())
    except (YamlParserError, YamlScannerError) as e:
        typer.echo(f"YAML syntax error in {settings}: {e.problem}", err=True)
        raise typer.Exit(EXIT_CONFIG_ERROR) from None
    except FileNotFoundError:
        typer.echo(f"Error: Settings file not found: {settings}", err=True)
        raise typer.Exit(EXIT_CONFIG_ERROR) from None
    except ValidationError as e:
        _echo_validation_errors(e)
        raise typer.Exit(EXIT_CONFIG_ERROR) from None

    flags = ctx.obj or {}
    configure_logging(
        json_output=flags.get("json_logs", False) or config.logging.json_output,
        level="DEBUG" if flags.get("verbose") else config.logging.level,
    )
    return config


def _echo_validation_errors(error: ValidationError) -> None:
    typer.echo("Configuration errors:", err=True)
    for item in error.errors():
        loc = ".".join(str(x) for x in item["loc"])
        typer.echo(f"  - {loc}: {item['msg']}", err=True)


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


@app.command()
def fetch(
    ctx: typer.Context,
    settings: str = typer.Option(..., "--settings", "-s", help="Path to settings YAML file."),
    output_format: Literal["console", "json"] = typer.Option(
        "console",
        "--format",
        "-f",
        help="Output format: 'console' (summary and records) or 'json' (full result).",
    ),
    limit: int | None = typer.Option(None, "--limit", "-n", min=0, help="Show at most N records."),
) -> None:
    """Fetch records from the configured source."""
    config = _load_settings_or_exit(ctx, settings)
    source = _get_plugin_manager().create_source(config.source.type)

    try:
        result = source.fetch(config.source.options)
    except PluginConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(EXIT_CONFIG_ERROR) from None

    records = result.records if limit is None else result.records[:limit]
    if output_format == "json":
        payload = result.to_dict()
        payload["records"] = records
        _echo_json(payload)
    else:
        status = "OK" if result.success else "FAILED"
        typer.echo(f"{status}: {result.total} record(s) from {config.source.type}")
        for error in result.errors:
            retry = "retryable" if error.retryable else "terminal"
            typer.echo(f"  [{error.code}] ({retry}) {error.message}", err=True)
        for record in records:
            typer.echo(json.dumps(record, ensure_ascii=False, default=str))

    if not result.success:
        raise typer.Exit(EXIT_FAILED)


@app.command()
def test(
    ctx: typer.Context,
    settings: str = typer.Option(..., "--settings", "-s", help="Path to settings YAML file."),
) -> None:
    """Check that the configured source is reachable."""
    config = _load_settings_or_exit(ctx, settings)
    source = _get_plugin_manager().create_source(config.source.type)

    try:
        result = source.test(config.source.options)
    except PluginConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(EXIT_CONFIG_ERROR) from None

    if result.success:
        typer.echo(f"OK: {result.message}")
        return
    typer.echo(f"FAILED: {result.message}", err=True)
    raise typer.Exit(EXIT_FAILED)


@app.command("show-config")
def show_config(
    ctx: typer.Context,
    settings: str = typer.Option(..., "--settings", "-s", help="Path to settings YAML file."),
) -> None:
    """Print the resolved settings with secrets redacted."""
    config = _load_settings_or_exit(ctx, settings)
    typer.echo(yaml.safe_dump(resolve_config(config), sort_keys=False), nl=False)


def _parse_options(
    format_hint: FileFormat | None,
    json_path: str | None,
    record_path: str | None,
    sheet: str | None,
    delimiter: str | None,
) -> ParseOptions:
    from sluice.plugins.parsers.options import ParseOptions

    raw: dict[str, Any] = {"format": format_hint}
    if delimiter is not None:
        raw["csv"] = {"delimiter": "\t" if delimiter == "\\t" else delimiter}
    if json_path is not None:
        raw["json"] = {"path": json_path}
    if record_path is not None:
        raw["xml"] = {"record_path": record_path}
    if sheet is not None:
        raw["xlsx"] = {"sheet": int(sheet) if sheet.isdigit() else sheet}
    try:
        return ParseOptions.from_dict(raw)
    except PluginConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(EXIT_CONFIG_ERROR) from None


def _read_file_or_exit(file: Path) -> bytes:
    try:
        return file.read_bytes()
    except OSError as e:
        typer.echo(f"Error: cannot read {file}: {e}", err=True)
        raise typer.Exit(EXIT_CONFIG_ERROR) from None


@app.command()
def parse(
    file: Path = typer.Argument(..., help="File to parse."),
    format_hint: FileFormat | None = typer.Option(None, "--format-hint", help="Skip format detection."),
    json_path: str | None = typer.Option(None, "--json-path", help="Path to the record array in a JSON document."),
    record_path: str | None = typer.Option(None, "--record-path", help="XML record element (tag or //path)."),
    sheet: str | None = typer.Option(None, "--sheet", help="Excel sheet name or 0-based index."),
    delimiter: str | None = typer.Option(None, "--delimiter", help="CSV delimiter (default: detect)."),
) -> None:
    """Parse a local CSV, JSON, XML or Excel file and print the result as JSON."""
    options = _parse_options(format_hint, json_path, record_path, sheet, delimiter)
    content = _read_file_or_exit(file)

    result = _get_plugin_manager().create_parser_service().parse(content, options, filename=file.name)
    _echo_json(result.to_dict())
    if not result.success:
        raise typer.Exit(EXIT_FAILED)


@app.command()
def preview(
    file: Path = typer.Argument(..., help="File to preview."),
    rows: int = typer.Option(10, "--rows", "-r", min=1, help="Number of sample rows."),
    format_hint: FileFormat | None = typer.Option(None, "--format-hint", help="Skip format detection."),
    output_format: Literal["console", "json"] = typer.Option("console", "--format", "-f", help="Output format."),
) -> None:
    """Show detected fields, their types and sample rows of a file."""
    options = _parse_options(format_hint, None, None, None, None)
    content = _read_file_or_exit(file)

    result = _get_plugin_manager().create_parser_service().preview(content, options, max_rows=rows, filename=file.name)
    if output_format == "json":
        _echo_json(result.to_dict())
        return

    typer.echo(f"Format: {result.format}  Rows: {result.total_rows}")
    for info in result.fields:
        typer.echo(f"  {info.key:30} {info.type:8} nulls={info.null_count} unique={info.unique_count}")
    for warning in result.warnings:
        typer.secho(f"Warning: {warning}", fg=typer.colors.YELLOW, err=True)


@app.command("plugins")
def plugins_list() -> None:
    """List registered sources and parsers."""
    manager = _get_plugin_manager()

    typer.echo("SOURCES:")
    for cls in manager.get_sources():
        typer.echo(f"  {cls.source_type:20} - {_summary(cls)}")
    typer.echo("PARSERS:")
    for cls in manager.get_parsers():
        typer.echo(f"  {cls.format:20} - {_summary(cls)}")


def _summary(cls: type) -> str:
    """First line of a class docstring."""
    doc = (cls.__doc__ or "").strip()
    return doc.splitlines()[0] if doc else cls.__name__


if __name__ == "__main__":
    app()
