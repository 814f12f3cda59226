"""Participant identity commands."""

from __future__ import annotations

import typer

from flight_roster.cli import helpers
from flight_roster.client import RosterClient


def whoami() -> None:
    """Show your participant ID and callsign."""

    async def action(client: RosterClient) -> None:
        helpers.console.print(f"Participant ID: [bold]{client.participant_id}[/bold]")
        helpers.console.print(f"Callsign:       {client.display_name}")

    helpers.run_with_client(action, wait_for_roster=False)


def callsign(
    name: str = typer.Argument(..., help="New callsign, e.g. CARGO777"),
) -> None:
    """Save your callsign (display name)."""

    async def action(client: RosterClient) -> bool:
        result = await client.save_own_display_name(name)
        return result.ok

    if not helpers.run_with_client(action, wait_for_roster=False):
        raise typer.Exit(1)
