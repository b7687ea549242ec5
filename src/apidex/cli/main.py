"""
Apidex CLI

Command-line interface for storing and searching API documentation.

Usage::

    apidex import ./twilio.json              # Add a service document
    apidex search "send a text message"      # Natural-language search
    apidex show twilio --method POST         # Exact retrieval
    apidex endpoint twilio messages          # Single endpoint lookup
    apidex list                              # Stored services
    apidex mcp                               # Start the MCP server
"""

import json
import logging
import time
from pathlib import Path

import click

from apidex.client import Apidex
from apidex.core.config import ApidexConfig
from apidex.core.search import ResultFormatter
from apidex.exceptions import (
    ApidexError,
    ConfigError,
    DocumentNotFoundError,
    EndpointNotFoundError,
)


# ---------------------------------------------------------------------------
# Logging helpers
# ---------------------------------------------------------------------------

def _configure_logging(config: ApidexConfig, verbose: bool) -> None:
    """Set up logging for the CLI session."""
    level = logging.DEBUG if verbose else getattr(logging, config.log_level, logging.INFO)
    logging.basicConfig(level=level, format=config.log_format)
    # Suppress noisy HTTP loggers (MCP transports)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _client(ctx: click.Context) -> Apidex:
    return ctx.obj["client"]


# ---------------------------------------------------------------------------
# Top-level group
# ---------------------------------------------------------------------------

@click.group()
@click.version_option(package_name="apidex")
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False),
    default=None,
    envvar="APIDEX_DATA_DIR",
    help="Directory holding <service>.json documents (default: $APIDEX_DATA_DIR or ./data).",
)
@click.pass_context
def cli(ctx: click.Context, data_dir: str | None):
    """Apidex — search the API reference docs of many services at once."""
    ctx.ensure_object(dict)
    config = ApidexConfig.from_env()
    if data_dir:
        config.data_dir = Path(data_dir).resolve()
    try:
        config.validate()
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)
    ctx.obj["config"] = config
    ctx.obj["client"] = Apidex(config=config)


# ---------------------------------------------------------------------------
# apidex search
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("query")
@click.option("-f", "--format", "fmt",
              type=click.Choice(["console", "json", "compact"]),
              default="console", help="Output format.")
@click.option("-n", "--max-services", type=click.IntRange(min=0), default=None,
              help="Maximum number of services to show (0 = all).")
@click.option("-m", "--max-matches", type=click.IntRange(min=1), default=None,
              help="Maximum endpoints per service (default: 5).")
@click.option("--explain", is_flag=True, help="Show how each score was computed.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def search(ctx: click.Context, query: str, fmt: str, max_services: int | None,
           max_matches: int | None, explain: bool, verbose: bool):
    """Rank endpoints of every stored service against a natural-language QUERY."""
    _configure_logging(ctx.obj["config"], verbose)
    t0 = time.perf_counter()
    try:
        results = _client(ctx).search(
            query, max_services=max_services, max_matches=max_matches, explain=explain,
        )
    except ApidexError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)
    elapsed = time.perf_counter() - t0

    formatter = ResultFormatter()
    if fmt == "json":
        click.echo(formatter.format_json(results, query=query))
    elif fmt == "compact":
        click.echo(formatter.format_compact(results))
    else:
        click.echo(formatter.format_console(results, elapsed_time=elapsed))


# ---------------------------------------------------------------------------
# apidex show
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("service")
@click.option("--method", default=None, help="Only endpoints with this HTTP method.")
@click.option("--path", "path_fragment", default=None, help="Only endpoints whose path contains this text.")
@click.option("-q", "--query", default=None, help="Only endpoints whose path/description/category contains this text.")
@click.option("-f", "--format", "fmt", type=click.Choice(["console", "json"]),
              default="console", help="Output format.")
@click.pass_context
def show(ctx: click.Context, service: str, method: str | None,
         path_fragment: str | None, query: str | None, fmt: str):
    """Show the stored documentation of SERVICE, optionally filtered."""
    try:
        document = _client(ctx).get_documentation(
            service, method=method, path=path_fragment, query=query,
        )
    except DocumentNotFoundError:
        click.echo(f"Error: Documentation for {service} not found.", err=True)
        click.echo("Run 'apidex list' to see stored services.", err=True)
        raise SystemExit(1)
    except ApidexError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)

    if fmt == "json":
        click.echo(json.dumps(document.to_dict(), indent=2, ensure_ascii=False))
    else:
        click.echo(ResultFormatter.format_document(document))


# ---------------------------------------------------------------------------
# apidex endpoint
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("service")
@click.argument("fragment")
@click.pass_context
def endpoint(ctx: click.Context, service: str, fragment: str):
    """Show the first endpoint of SERVICE whose path or description contains FRAGMENT."""
    try:
        found = _client(ctx).find_endpoint(service, fragment)
    except EndpointNotFoundError as exc:
        click.echo(f"Error: {exc}", err=True)
        if exc.available:
            click.echo("Available endpoints:", err=True)
            for item in exc.available:
                click.echo(f"  {item['path']}  {item['description']}", err=True)
        raise SystemExit(1)
    except ApidexError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)
    click.echo(json.dumps(found.to_dict(), indent=2, ensure_ascii=False))


# ---------------------------------------------------------------------------
# apidex list
# ---------------------------------------------------------------------------

@cli.command(name="list")
@click.pass_context
def list_services(ctx: click.Context):
    """List stored services with their endpoint counts."""
    client = _client(ctx)
    summaries = client.list_services()
    if not summaries:
        click.echo(f"No documentation stored in {client.config.data_dir}.", err=True)
        click.echo("Add one with 'apidex import <file.json>'.", err=True)
        raise SystemExit(1)

    click.echo("─" * 60)
    click.echo("  APIDEX — Stored Services")
    click.echo("─" * 60)
    for s in summaries:
        updated = s.last_updated.strftime("%Y-%m-%d") if s.last_updated else "-"
        click.echo(f"  {s.service:<16} {s.endpoint_count:>5,} endpoints   updated {updated}")
        if s.description:
            click.echo(f"  {'':<16} {s.description[:56]}")
    click.echo("─" * 60)


# ---------------------------------------------------------------------------
# apidex import
# ---------------------------------------------------------------------------

@cli.command(name="import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--service", default=None, help="Service id to store under (default: file name).")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def import_document(ctx: click.Context, file: str, service: str | None, verbose: bool):
    """Validate a normalized JSON document FILE and add it to the store."""
    _configure_logging(ctx.obj["config"], verbose)
    try:
        stored = _client(ctx).import_document(file, service_id=service)
    except ApidexError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)
    click.echo(f"Stored {stored}")


# ---------------------------------------------------------------------------
# apidex mcp
# ---------------------------------------------------------------------------

@cli.command()
@click.option("--transport", type=click.Choice(["stdio", "sse", "streamable-http"]),
              default="stdio", help="MCP transport (default: stdio).")
@click.option("-v", "--verbose", is_flag=True)
@click.pass_context
def mcp(ctx: click.Context, transport: str, verbose: bool):
    """Start the Apidex MCP server for AI assistant integration."""
    _configure_logging(ctx.obj["config"], verbose)
    try:
        from apidex.mcp.server import create_server  # noqa: E402
    except ImportError:
        click.echo(
            "Error: MCP dependencies not installed.\n"
            "Install with:  pip install 'apidex[mcp]'",
            err=True,
        )
        raise SystemExit(1)

    server = create_server(ctx.obj["config"])
    server.run(transport=transport)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    cli()
