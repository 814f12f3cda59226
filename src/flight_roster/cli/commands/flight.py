"""Administrator commands: add, edit and delete flights.

Every invocation is a fresh session, so the PIN is asked for each time.
"""

from __future__ import annotations

from typing import Optional

import typer

from flight_roster.cli import helpers
from flight_roster.client import RosterClient
from flight_roster.models import FlightFields
from flight_roster.notifications import always_confirm, info

app = typer.Typer(help="Manage flights (administrators only)")

_PIN_OPTION = typer.Option(..., "--pin", prompt="Admin PIN", hide_input=True, help="Administrator PIN")


@app.command()
def add(
    flight_number: str = typer.Option(..., "--flight-number", "-n", prompt="Flight #", help="e.g. AA123"),
    departure: str = typer.Option(..., "--departure", "-f", prompt="Departure", help="e.g. JFK"),
    arrival: str = typer.Option(..., "--arrival", "-t", prompt="Arrival", help="e.g. LAX"),
    departure_time: str = typer.Option(..., "--time", prompt="Departure Time", help="e.g. 08:00 AM"),
    pin: str = _PIN_OPTION,
) -> None:
    """Add a new flight."""
    fields = FlightFields(
        flight_number=flight_number.strip(),
        departure=departure.strip(),
        arrival=arrival.strip(),
        departure_time=departure_time.strip(),
    )

    async def action(client: RosterClient) -> bool:
        if not client.submit_pin(pin):
            return False
        result = await client.create_flight(fields)
        if result.ok:
            helpers.console.print(f"   Flight ID: {result.flight_id}")
        return result.ok

    if not helpers.run_with_client(action, wait_for_roster=False):
        raise typer.Exit(1)


@app.command()
def edit(
    flight: str = typer.Argument(..., help="Flight ID or flight number"),
    flight_number: Optional[str] = typer.Option(None, "--flight-number", "-n"),
    departure: Optional[str] = typer.Option(None, "--departure", "-f"),
    arrival: Optional[str] = typer.Option(None, "--arrival", "-t"),
    departure_time: Optional[str] = typer.Option(None, "--time"),
    pin: str = _PIN_OPTION,
) -> None:
    """Edit a flight. Omitted fields keep their current value."""
    changes = {
        name: value.strip()
        for name, value in {
            "flight_number": flight_number,
            "departure": departure,
            "arrival": arrival,
            "departure_time": departure_time,
        }.items()
        if value is not None
    }

    async def action(client: RosterClient) -> bool:
        if not client.submit_pin(pin):
            return False
        record = helpers.require_flight(client, flight)
        current = client.coordinator.begin_edit(record)
        if current is None:
            return False
        result = await client.update_flight(record, current.model_copy(update=changes))
        return result.ok

    if not helpers.run_with_client(action):
        raise typer.Exit(1)


@app.command()
def delete(
    flight: str = typer.Argument(..., help="Flight ID or flight number"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
    pin: str = _PIN_OPTION,
) -> None:
    """Delete a flight, including its signups."""

    async def action(client: RosterClient) -> bool:
        if not client.submit_pin(pin):
            return False
        record = helpers.require_flight(client, flight)
        result = await client.delete_flight(record.id)
        if result.cancelled:
            info(client.notifier, "Deletion cancelled.")
            return True
        return result.ok

    confirmer = always_confirm if yes else helpers.console_confirm
    if not helpers.run_with_client(action, confirmer=confirmer):
        raise typer.Exit(1)


__all__ = ["app"]
