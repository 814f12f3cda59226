"""
flight-roster - a shared flight roster kept in sync across clients.

Usage:
    flight-roster list
    flight-roster watch
    flight-roster signup AA123
    flight-roster flight add --flight-number AA123 ...
"""

import typer

from flight_roster.cli.commands import config_cmd, flight, profile, roster
from flight_roster.cli.helpers import configure_logging

__version__ = "0.3.0"

app = typer.Typer(
    name="flight-roster",
    help="Volunteer roster for shared flights",
    add_completion=False,
    no_args_is_help=True,
)


@app.callback()
def callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Volunteer roster for shared flights."""
    configure_logging(verbose)


app.command("list")(roster.list_flights)
app.command()(roster.watch)
app.command()(roster.signup)
app.command()(profile.whoami)
app.command()(profile.callsign)
app.add_typer(flight.app, name="flight")
app.add_typer(config_cmd.app, name="config")


def main():
    app()


if __name__ == "__main__":
    main()
