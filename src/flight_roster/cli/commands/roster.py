"""Roster viewing and signup commands."""

from __future__ import annotations

import asyncio
from typing import Optional

import typer
from rich.live import Live

from flight_roster.cli import helpers
from flight_roster.client import RosterClient


def list_flights() -> None:
    """Show all flights sorted by flight number."""

    async def action(client: RosterClient) -> None:
        helpers.console.print(helpers.render_roster(client))

    helpers.run_with_client(action)


async def _follow(client: RosterClient, duration: Optional[float]) -> None:
    changed = asyncio.Event()
    client.engine.add_listener(lambda _view: changed.set())
    client.resolver.add_listener(lambda _cache: changed.set())

    loop = asyncio.get_running_loop()
    deadline = loop.time() + duration if duration is not None else None

    with Live(helpers.render_roster(client), console=helpers.console, refresh_per_second=4) as live:
        while True:
            timeout = None if deadline is None else max(0.0, deadline - loop.time())
            try:
                await asyncio.wait_for(changed.wait(), timeout)
            except asyncio.TimeoutError:
                return
            changed.clear()
            live.update(helpers.render_roster(client))


def watch(
    duration: Optional[float] = typer.Option(
        None, "--duration", "-d", min=0, help="Stop after this many seconds (default: until Ctrl-C)"
    ),
) -> None:
    """Follow the roster live as other participants change it."""

    async def action(client: RosterClient) -> None:
        await _follow(client, duration)

    try:
        helpers.run_with_client(action)
    except KeyboardInterrupt:
        helpers.console.print("Stopped watching.")


def signup(
    flight: str = typer.Argument(..., help="Flight ID or flight number"),
) -> None:
    """Sign up for a flight, or withdraw if already signed up."""

    async def action(client: RosterClient) -> bool:
        record = helpers.require_flight(client, flight)
        result = await client.toggle_signup(record)
        return result.ok

    if not helpers.run_with_client(action):
        raise typer.Exit(1)
