"""CLI command modules for flight-roster."""
