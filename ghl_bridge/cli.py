"""GHL MCP Bridge CLI - Main entry point."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from .config import settings

app = typer.Typer(
    name="ghl-bridge",
    help="GoHighLevel CRM tools over MCP with GitHub and GHL OAuth",
    no_args_is_help=True,
)
console = Console(stderr=True)


def _mask(value: str) -> str:
    if not value:
        return "[red]Not set[/red]"
    if len(value) <= 8:
        return "****"
    return f"{value[:4]}...{value[-4:]}"


@app.command()
def serve(
    host: str = typer.Option(None, help="Bind address (default: HOST or 0.0.0.0)"),
    port: int = typer.Option(None, help="Port (default: PORT or 3006)"),
):
    """Run the HTTP server (MCP endpoint plus OAuth routes)."""
    import uvicorn

    from .log import configure_logging

    configure_logging(settings.log_level)
    missing = settings.missing_required()
    if missing:
        console.print(f"[red]Missing required environment variables:[/red] {', '.join(missing)}")
        raise typer.Exit(1)

    uvicorn.run(
        "ghl_bridge.app:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        log_level=settings.log_level.lower(),
    )


@app.command()
def stdio():
    """Run the MCP server over stdin/stdout."""
    from .bridge import Bridge
    from .log import configure_logging
    from .stdio import serve_stdio

    configure_logging(settings.log_level)
    missing = [name for name in settings.missing_required() if name != "AUTH_TOKEN"]
    if missing:
        console.print(f"[red]Missing required environment variables:[/red] {', '.join(missing)}")
        raise typer.Exit(1)

    async def _run():
        bridge = Bridge.from_settings(settings)
        await bridge.startup()
        try:
            await serve_stdio(bridge)
        finally:
            await bridge.shutdown()

    asyncio.run(_run())


@app.command("auth-url")
def auth_url(state: str = typer.Option(None, help="Session id to bind the tokens to")):
    """Print the GHL consent URL for connecting a location."""
    from .ghl.tokens import UpstreamTokenStore

    if not settings.ghl_client_id:
        console.print("[red]GHL_CLIENT_ID is not set[/red]")
        raise typer.Exit(1)

    store = UpstreamTokenStore(
        settings.ghl_client_id,
        settings.ghl_client_secret,
        settings.ghl_redirect_uri or None,
    )
    # Plain print to stdout so the URL can be piped
    print(store.authorization_url(settings.ghl_scope_list, state=state))


@app.command()
def status():
    """Show configuration state (secrets masked)."""
    table = Table(title="GHL MCP Bridge Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Mode", settings.mcp_mode)
    table.add_row("Base URL", settings.server_url)
    table.add_row("Port", str(settings.port))
    table.add_row("AUTH_TOKEN", _mask(settings.auth_token))
    table.add_row("GHL_CLIENT_ID", settings.ghl_client_id or "[red]Not set[/red]")
    table.add_row("GHL_CLIENT_SECRET", _mask(settings.ghl_client_secret))
    table.add_row("GHL_REDIRECT_URI", settings.ghl_redirect_uri or "[dim]default[/dim]")
    table.add_row(
        "GitHub OAuth",
        "enabled" if settings.oauth_enabled else "[yellow]disabled (bearer token only)[/yellow]",
    )
    table.add_row("Database", settings.database_url)
    console.print(table)

    missing = settings.missing_required()
    if missing:
        console.print(f"\n[red]Missing:[/red] {', '.join(missing)}")


@app.command()
def run():
    """Start in the mode selected by MCP_MODE (http or stdio)."""
    if settings.mcp_mode.lower() == "stdio":
        stdio()
    else:
        serve(host=None, port=None)


@app.command()
def version():
    """Show version information."""
    from . import __version__

    console.print(f"GHL MCP Bridge v{__version__}")


if __name__ == "__main__":
    app()
