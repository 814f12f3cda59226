"""Roster client configuration management."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

import toml  # type: ignore[import-untyped]

from flight_roster.errors import ConfigurationError

DEFAULT_SERVER_URL = "https://flight-roster.example.com"
DEFAULT_APP_ID = "default-app-id"
DEFAULT_TIMEOUT_SECONDS = 10.0

SERVER_URL_ENV_VAR = "FLIGHT_ROSTER_SERVER_URL"
APP_ID_ENV_VAR = "FLIGHT_ROSTER_APP_ID"
AUTH_TOKEN_ENV_VAR = "FLIGHT_ROSTER_AUTH_TOKEN"


def roster_home() -> Path:
    """Return ~/.flight-roster for the current HOME."""
    return Path.home() / ".flight-roster"


class RosterConfig:
    """Manage roster client configuration.

    Values come from ``~/.flight-roster/config.toml``; environment
    variables override the file.
    """

    def __init__(self, config_file: Optional[Path] = None) -> None:
        self.config_file = config_file or roster_home() / "config.toml"
        self.config_dir = self.config_file.parent

    def _load(self) -> dict[str, Any]:
        if not self.config_file.exists():
            return {}
        try:
            config = toml.load(self.config_file)
        except (toml.TomlDecodeError, OSError) as exc:
            raise ConfigurationError(
                f"Cannot parse configuration file {self.config_file}: {exc}"
            ) from exc
        if not isinstance(config, dict):
            raise ConfigurationError(f"Configuration file {self.config_file} is not a table")
        return config

    def _section_value(self, section: str, key: str) -> Any:
        table = self._load().get(section)
        if isinstance(table, dict):
            return table.get(key)
        return None

    def get_server_url(self) -> str:
        """Get server URL from environment or config."""
        url = os.environ.get(SERVER_URL_ENV_VAR) or self._section_value("server", "url")
        if url is None:
            return DEFAULT_SERVER_URL
        if not isinstance(url, str) or urlparse(url).scheme not in {"http", "https"}:
            raise ConfigurationError(f"Invalid server URL: {url!r}")
        return url.rstrip("/")

    def get_websocket_url(self) -> str:
        """Derive the push-channel URL from the server URL."""
        server_url = self.get_server_url()
        if server_url.startswith("https://"):
            return "wss://" + server_url[len("https://"):]
        return "ws://" + server_url[len("http://"):]

    def get_app_id(self) -> str:
        """Namespace under which this deployment's documents live."""
        app_id = os.environ.get(APP_ID_ENV_VAR) or self._section_value("app", "id")
        if app_id is None:
            return DEFAULT_APP_ID
        if not isinstance(app_id, str) or not app_id or "/" in app_id:
            raise ConfigurationError(f"Invalid app id: {app_id!r}")
        return app_id

    def get_timeout(self) -> float:
        timeout = self._section_value("http", "timeout")
        if timeout is None:
            return DEFAULT_TIMEOUT_SECONDS
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ConfigurationError(f"Invalid HTTP timeout: {timeout!r}")
        return float(timeout)

    def get_auth_token(self) -> Optional[str]:
        """Custom sign-in token, if one was provisioned for this client."""
        token = os.environ.get(AUTH_TOKEN_ENV_VAR) or self._section_value("auth", "token")
        if isinstance(token, str) and token.strip():
            return token.strip()
        return None

    def set_server_url(self, url: str) -> None:
        """Set server URL in config"""
        if urlparse(url).scheme not in {"http", "https"}:
            raise ConfigurationError(f"Invalid server URL: {url!r}")

        self.config_dir.mkdir(parents=True, exist_ok=True)
        config = self._load()

        server_section = config.get("server")
        if not isinstance(server_section, dict):
            server_section = {}
            config["server"] = server_section

        server_section["url"] = url.rstrip("/")

        with open(self.config_file, "w", encoding="utf-8") as f:
            toml.dump(config, f)

    def validate(self) -> None:
        """Read every setting once so malformed values fail up front."""
        self.get_server_url()
        self.get_app_id()
        self.get_timeout()
        self.get_auth_token()
