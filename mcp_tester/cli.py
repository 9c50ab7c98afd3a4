#!/usr/bin/env python3
"""
mcp-tester CLI - connect to MCP servers and try their tools

Usage:
    mcp-tester connect <address> [OPTIONS]
    mcp-tester call <tool> <address> [--args JSON] [OPTIONS]
    mcp-tester endpoints [--registry FILE]
    mcp-tester validate <registry.yaml>
    mcp-tester transports
    mcp-tester --version
"""

import asyncio
import json
import logging
import warnings
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__
from .bindings import TransportTag
from .config import Settings
from .manager import ConnectionManager
from .registry import DEFAULT_REGISTRY_FILE, Registry, RegistryError, load_registry
from .relay import RelayResponse, handle_call_tool, handle_connect

# Suppress asyncio subprocess cleanup warnings
warnings.filterwarnings("ignore", message=".*Event loop is closed.*")

app = typer.Typer(
    name="mcp-tester",
    help="🔌 mcp-tester - connect to MCP servers and try their tools",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)

TRANSPORT_HELP = f"Transport tag: {', '.join(t.value for t in TransportTag)} (inferred from the address if omitted)"


def version_callback(value: bool):
    if value:
        console.print(f"🔌 mcp-tester v{__version__}")
        raise typer.Exit()


def configure_logging(level: str) -> None:
    """Route library logging through Rich on stderr."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True,
        help="Show version and exit"
    ),
    log_level: str = typer.Option(
        "WARNING", "--log-level", "-l",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)"
    ),
):
    """
    🔌 mcp-tester - connect to MCP servers and try their tools

    Supports local processes (proc://), Streamable HTTP and legacy SSE.
    """
    configure_logging(log_level)


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

def parse_header_options(values: list[str] | None) -> dict[str, str]:
    """Turn ["Name: value", ...] into a header dict."""
    headers: dict[str, str] = {}
    for item in values or []:
        name, sep, value = item.partition(":")
        if not sep or not name.strip():
            raise typer.BadParameter(f"Expected 'Name: value', got {item!r}", param_hint="--header")
        headers[name.strip()] = value.strip()
    return headers


def load_registry_or_exit(path: Path, required: bool) -> Registry | None:
    """Load the registry file; a missing optional file yields None."""
    if not path.exists() and not required:
        return None
    registry, validation = load_registry(path)
    if not validation.is_valid:
        err_console.print("\n[red]❌ Registry validation failed:[/red]")
        err_console.print(str(validation))
        raise typer.Exit(code=1)
    return registry


def build_manager(registry: Registry | None, timeout_ms: int | None) -> ConnectionManager:
    settings = Settings()
    if registry is not None:
        settings = settings.merged(registry.defaults)
    settings = Settings.from_env(settings)
    settings = settings.merged({"relay_timeout_ms": timeout_ms})
    return ConnectionManager(settings=settings)


def resolve_target(
    address: str | None,
    endpoint: str | None,
    transport: str | None,
    headers: dict[str, str],
    registry: Registry | None,
) -> dict[str, Any]:
    """Build the relay body from a registered endpoint and/or CLI options."""
    body: dict[str, Any] = {"url": address, "transport": transport, "headers": headers}
    if endpoint is None:
        if not address:
            raise typer.BadParameter("Give an ADDRESS or --endpoint NAME", param_hint="ADDRESS")
        return body

    if registry is None:
        raise typer.BadParameter("--endpoint needs a registry file (see --registry)", param_hint="--endpoint")
    try:
        record = registry.get(endpoint)
    except RegistryError as e:
        raise typer.BadParameter(str(e), param_hint="--endpoint")

    descriptor = record.to_descriptor()
    return {
        "url": address or descriptor.address,
        "transport": transport or descriptor.transport.value,
        "headers": {**descriptor.headers, **headers},
    }


def fail(response: RelayResponse) -> None:
    err_console.print(f"\n[red]❌ {response.message}[/red]")
    raise typer.Exit(code=1)


def _required_params(schema: Any) -> str:
    if not isinstance(schema, dict):
        return ""
    properties = schema.get("properties") or {}
    required = set(schema.get("required") or [])
    return ", ".join(f"{name}*" if name in required else name for name in properties)


def print_connection(result: dict[str, Any]) -> None:
    tools = result.get("tools", [])
    resources = result.get("resources", [])

    table = Table(title=f"Tools ({len(tools)})")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Parameters (* required)", style="magenta")
    for tool in tools:
        table.add_row(
            tool["name"],
            tool.get("description") or "",
            _required_params(tool.get("inputSchema")),
        )
    console.print()
    console.print(table)

    if resources:
        table = Table(title=f"Resources ({len(resources)})")
        table.add_column("URI", style="cyan")
        table.add_column("Name")
        table.add_column("MIME type", style="magenta")
        for resource in resources:
            table.add_row(resource["uri"], resource.get("name") or "", resource.get("mimeType") or "")
        console.print()
        console.print(table)
    else:
        console.print("\n[dim]No resources[/dim]")


def print_tool_result(result: dict[str, Any]) -> None:
    style = "red" if result.get("isError") else "green"
    for item in result.get("content", []):
        if item.get("type") == "text":
            console.print(f"[{style}]{item.get('text', '')}[/{style}]")
        else:
            mime = item.get("mimeType")
            console.print(f"[dim]<{item.get('type')} content{f' ({mime})' if mime else ''}>[/dim]")


# ─────────────────────────────────────────────────────────────────────────────
# Commands
# ─────────────────────────────────────────────────────────────────────────────

@app.command()
def connect(
    address: Optional[str] = typer.Argument(
        None, help="Server address: https://host/mcp or 'proc://executable args'"
    ),
    endpoint: Optional[str] = typer.Option(
        None, "--endpoint", "-e", help="Name or id of a registered endpoint"
    ),
    transport: Optional[str] = typer.Option(None, "--transport", "-t", help=TRANSPORT_HELP),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Extra request header 'Name: value' (repeatable)"
    ),
    registry_file: Path = typer.Option(
        Path(DEFAULT_REGISTRY_FILE), "--registry", "-f", help="Endpoint registry YAML file"
    ),
    timeout_ms: Optional[int] = typer.Option(
        None, "--timeout", help="Deadline for the whole operation in milliseconds"
    ),
    output: str = typer.Option("text", "--output", "-o", help="Output format: text or json"),
):
    """
    Connect to a server and list its tools and resources.
    """
    registry = load_registry_or_exit(registry_file, required=endpoint is not None)
    body = resolve_target(address, endpoint, transport, parse_header_options(header), registry)
    manager = build_manager(registry, timeout_ms)

    if output != "json":
        console.print(f"\n📡 Connecting to [bold]{body['url']}[/bold]...")

    response = asyncio.run(handle_connect(manager, body))
    if not response.ok:
        fail(response)

    if output == "json":
        console.print_json(data=response.body)
    else:
        print_connection(response.body)


@app.command()
def call(
    tool_name: str = typer.Argument(..., help="Name of the tool to call"),
    address: Optional[str] = typer.Argument(
        None, help="Server address: https://host/mcp or 'proc://executable args'"
    ),
    args: str = typer.Option("{}", "--args", "-a", help="Tool arguments as a JSON value"),
    endpoint: Optional[str] = typer.Option(
        None, "--endpoint", "-e", help="Name or id of a registered endpoint"
    ),
    transport: Optional[str] = typer.Option(None, "--transport", "-t", help=TRANSPORT_HELP),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Extra request header 'Name: value' (repeatable)"
    ),
    registry_file: Path = typer.Option(
        Path(DEFAULT_REGISTRY_FILE), "--registry", "-f", help="Endpoint registry YAML file"
    ),
    timeout_ms: Optional[int] = typer.Option(
        None, "--timeout", help="Deadline for the whole operation in milliseconds"
    ),
    output: str = typer.Option("text", "--output", "-o", help="Output format: text or json"),
):
    """
    Call one tool on a server and print its result.
    """
    try:
        arguments = json.loads(args)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"Invalid JSON: {e}", param_hint="--args")

    registry = load_registry_or_exit(registry_file, required=endpoint is not None)
    body = resolve_target(address, endpoint, transport, parse_header_options(header), registry)
    body["toolName"] = tool_name
    body["arguments"] = arguments
    manager = build_manager(registry, timeout_ms)

    if output != "json":
        console.print(f"\n🔧 Calling [bold]{tool_name}[/bold] on {body['url']}...")

    response = asyncio.run(handle_call_tool(manager, body))
    if not response.ok:
        fail(response)

    if output == "json":
        console.print_json(data=response.body)
    else:
        print_tool_result(response.body)

    if response.body.get("isError"):
        raise typer.Exit(code=1)


@app.command()
def endpoints(
    registry_file: Path = typer.Option(
        Path(DEFAULT_REGISTRY_FILE), "--registry", "-f", help="Endpoint registry YAML file"
    ),
):
    """
    List the endpoints recorded in a registry file.
    """
    registry = load_registry_or_exit(registry_file, required=True)

    table = Table(title=f"Endpoints ({registry_file})")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Transport", style="magenta")
    table.add_column("Address")
    table.add_column("Headers")
    for record in registry.endpoints:
        table.add_row(
            str(record.id),
            record.name,
            record.transport.value,
            record.address,
            ", ".join(record.headers) or "-",  # names only, values may be secrets
        )
    console.print()
    console.print(table)


@app.command()
def validate(
    registry_file: Path = typer.Argument(
        ...,
        help="Path to the registry YAML file",
        exists=True,
        readable=True,
    ),
):
    """
    Validate a registry YAML file.

    Check the schema and report any errors without connecting anywhere.
    """
    console.print(f"\n📄 Validating: {registry_file}")

    registry, validation = load_registry(registry_file)

    if validation.is_valid:
        console.print(f"\n[green]✅ Valid registry:[/green] {len(registry.endpoints)} endpoint(s)")
        for record in registry.endpoints:
            console.print(f"   • {record.name} [dim]({record.transport.value})[/dim]")
        raise typer.Exit(code=0)
    else:
        console.print("\n[red]❌ Validation failed:[/red]")
        console.print(str(validation))
        raise typer.Exit(code=1)


@app.command()
def transports():
    """
    Show the registered transport bindings.
    """
    manager = ConnectionManager()

    table = Table(title="Transports")
    table.add_column("Tag", style="cyan")
    table.add_column("Binding", style="magenta")
    table.add_column("Selected for")
    examples = {
        TransportTag.PROCESS.value: "proc://... (inferred)",
        TransportTag.STREAM_HTTP.value: "http(s)://... (inferred)",
        TransportTag.EVENT_HTTP.value: "http(s)://... (explicit tag only)",
    }
    for tag, binding in zip(manager.registered_tags(), manager.available_transports()):
        table.add_row(tag, type(binding).__name__, examples.get(tag, ""))
    console.print()
    console.print(table)


@app.command()
def info():
    """
    Show information about mcp-tester.
    """
    console.print(f"""
🔌 [bold]mcp-tester[/bold] v{__version__}

Connect to MCP servers and try their tools

[bold]Features:[/bold]
  • Local process (proc://), Streamable HTTP and legacy SSE transports
  • Custom request headers per endpoint
  • YAML endpoint registry with {{{{env.NAME}}}} interpolation
  • Friendly error messages for common connection problems

[bold]Quick Start:[/bold]
  mcp-tester connect https://example.com/mcp
  mcp-tester call get_weather https://example.com/mcp --args '{{"location": "Paris"}}'
  mcp-tester connect "proc://python -m my_server"
""")


if __name__ == "__main__":
    app()
