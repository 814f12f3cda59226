"""Configuration commands."""

from __future__ import annotations

import typer

from flight_roster.cli.helpers import console
from flight_roster.config import RosterConfig
from flight_roster.errors import ConfigurationError

app = typer.Typer(help="Show or change client configuration")


@app.command()
def show() -> None:
    """Show the effective configuration."""
    config = RosterConfig()
    try:
        config.validate()
    except ConfigurationError as exc:
        console.print(f"❌ {exc}")
        raise typer.Exit(1)

    console.print(f"Config file: {config.config_file}")
    console.print(f"   Server:    {config.get_server_url()}")
    console.print(f"   Push URL:  {config.get_websocket_url()}")
    console.print(f"   App ID:    {config.get_app_id()}")
    console.print(f"   Timeout:   {config.get_timeout():g}s")
    console.print(f"   Sign-in:   {'token' if config.get_auth_token() else 'anonymous'}")


@app.command("set-server")
def set_server(url: str = typer.Argument(..., help="Document service URL (http or https)")) -> None:
    """Point the client at another deployment."""
    try:
        RosterConfig().set_server_url(url)
    except ConfigurationError as exc:
        console.print(f"❌ {exc}")
        raise typer.Exit(1)
    console.print(f"✅ Server URL set to: {url.rstrip('/')}")


__all__ = ["app"]
