"""CLI helpers exposed for other modules."""

from .helpers import console, render_roster, run_with_client

__all__ = ["console", "render_roster", "run_with_client"]
