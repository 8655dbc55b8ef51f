from typing import Annotated

import typer
from rich.console import Console

from literal_lift.cli.check import ConfigOption, load_cli_options

serve_app = typer.Typer(help="Start servers.", no_args_is_help=True)
console = Console(stderr=True)


@serve_app.command("mcp")
def mcp(
    transport: Annotated[str, typer.Option(help="MCP transport: stdio, sse or http.")] = "stdio",
    config: ConfigOption = None,
) -> None:
    """Start the MCP server."""
    from literal_lift.mcp.server import create_mcp_server

    server = create_mcp_server(load_cli_options(config))
    console.print(f"[green]Starting MCP server (transport: {transport})[/green]")
    server.run(transport=transport)  # type: ignore[arg-type]
