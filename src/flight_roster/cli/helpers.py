"""Shared CLI plumbing: console, client construction, roster rendering."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from flight_roster.client import RosterClient
from flight_roster.config import RosterConfig
from flight_roster.errors import AuthenticationError, ConfigurationError
from flight_roster.models import FlightRecord
from flight_roster.notifications import Confirmer, ConsoleNotifier, never_confirm

logger = logging.getLogger(__name__)

console = Console()

T = TypeVar("T")


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


async def console_confirm(message: str) -> bool:
    return typer.confirm(message, default=False)


def build_client(confirmer: Confirmer = never_confirm) -> RosterClient:
    """Client for the configured deployment, reporting to the console."""
    return RosterClient.from_config(RosterConfig(), ConsoleNotifier(console), confirmer)


async def _run(
    action: Callable[[RosterClient], Awaitable[T]],
    confirmer: Confirmer,
    wait_for_roster: bool,
) -> T:
    client = build_client(confirmer)
    async with client:
        if wait_for_roster:
            if not client.engine.running:
                raise typer.Exit(1)
            timeout = RosterConfig().get_timeout()
            if not await client.engine.wait_for_snapshot(timeout):
                console.print("❌ Timed out waiting for the roster.")
                raise typer.Exit(1)
            if not await client.engine.wait_for_identities(timeout):
                logger.warning("Callsign lookups still pending; showing truncated IDs")
        return await action(client)


def run_with_client(
    action: Callable[[RosterClient], Awaitable[T]],
    confirmer: Confirmer = never_confirm,
    wait_for_roster: bool = True,
) -> T:
    """Run one CLI action inside a fresh session.

    Fatal configuration and authentication errors exit with status 1.
    """
    try:
        return asyncio.run(_run(action, confirmer, wait_for_roster))
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        console.print("❌ Error: backend configuration is invalid. Please contact support.")
        raise typer.Exit(1)
    except AuthenticationError:
        # Already reported by the session.
        raise typer.Exit(1)


def lookup_flight(client: RosterClient, key: str) -> Optional[FlightRecord]:
    """Find a flight by document ID, or by flight number when unambiguous."""
    record = client.engine.find(key)
    if record is not None:
        return record
    matches = [r for r in client.view if r.flight_number == key]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        console.print(f"❌ Flight number {key} is ambiguous; use the flight ID.")
    return None


def require_flight(client: RosterClient, key: str) -> FlightRecord:
    record = lookup_flight(client, key)
    if record is None:
        console.print(f"❌ Flight not found: {key}")
        raise typer.Exit(1)
    return record


def render_roster(client: RosterClient) -> Table:
    table = Table(title="Available Flights", show_header=True, header_style="bold", expand=False)
    table.add_column("ID", style="dim")
    table.add_column("Flight #", style="bold")
    table.add_column("From")
    table.add_column("To")
    table.add_column("Time")
    table.add_column("Signed Up Users")

    if not client.view:
        table.caption = "No flights available."
        return table

    for record in client.view:
        names = client.signup_names(record)
        if record.is_signed_up(client.participant_id):
            names = [f"[green]{name}[/green]" if pid == client.participant_id else name
                     for pid, name in zip(record.signed_up_users, names)]
        table.add_row(
            record.id,
            record.flight_number,
            record.departure,
            record.arrival,
            record.departure_time,
            ", ".join(names) if names else "[dim]No one has signed up yet.[/dim]",
        )
    return table
