"""HTTP and WebSocket adapters for the hosted document service.

Request/response calls go through one shared ``httpx.AsyncClient``;
collection subscriptions hold a WebSocket open and receive a full
snapshot push on every change. Reconnection is left to the caller: a
dropped push channel is reported through the subscription's error
handler and the subscription ends.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx
import websockets
from websockets import ConnectionClosed

from flight_roster.config import RosterConfig
from flight_roster.errors import AuthenticationError, StoreError
from flight_roster.models import Profile

from .base import Document, ErrorHandler, SnapshotHandler, flights_collection, profiles_collection
from .credentials import ParticipantCredentialStore

logger = logging.getLogger(__name__)


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(data, dict) and isinstance(data.get("detail"), str):
        return f"HTTP {response.status_code}: {data['detail']}"
    return f"HTTP {response.status_code}"


class DocumentServiceClient:
    """Shared connection state for the remote adapters.

    Args:
        server_url: Base URL of the document service (http or https)
        websocket_url: Base URL of the push channel (ws or wss)
        timeout: Per-request timeout in seconds; the only timeout policy
    """

    def __init__(
        self,
        server_url: str,
        websocket_url: str,
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.server_url = server_url.rstrip("/")
        self.websocket_url = websocket_url.rstrip("/")
        self.timeout = timeout
        self.participant_id: Optional[str] = None
        self._http_client = http_client

    @classmethod
    def from_config(cls, config: RosterConfig) -> "DocumentServiceClient":
        return cls(
            server_url=config.get_server_url(),
            websocket_url=config.get_websocket_url(),
            timeout=config.get_timeout(),
        )

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    def auth_headers(self) -> dict[str, str]:
        if not self.participant_id:
            return {}
        return {"Authorization": f"Bearer {self.participant_id}"}

    async def close(self):
        """Close HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def request(
        self,
        method: str,
        path: str,
        payload: Optional[dict[str, Any]] = None,
        allow_not_found: bool = False,
    ) -> Optional[httpx.Response]:
        """Issue one request and map failures to StoreError.

        Returns None for a 404 when ``allow_not_found`` is set.
        """
        url = f"{self.server_url}/api/v1/{path}"
        try:
            response = await self._get_http_client().request(
                method, url, json=payload, headers=self.auth_headers()
            )
        except httpx.HTTPError as exc:
            raise StoreError(f"Cannot reach server: {exc}") from exc

        if response.status_code == 404 and allow_not_found:
            return None
        if response.status_code >= 400:
            raise StoreError(_error_detail(response), status_code=response.status_code)
        return response

    async def request_json(self, method: str, path: str, payload: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        response = await self.request(method, path, payload)
        try:
            data = response.json()
        except ValueError as exc:
            raise StoreError("Invalid server response") from exc
        if not isinstance(data, dict):
            raise StoreError("Invalid server response")
        return data


class RemoteIdentityProvider:
    """Anonymous or token-based sign-in against the document service.

    The issued participant ID is persisted so the same client keeps its
    identity across sessions.
    """

    def __init__(
        self,
        service: DocumentServiceClient,
        credential_store: Optional[ParticipantCredentialStore] = None,
        auth_token: Optional[str] = None,
    ):
        self.service = service
        self.credential_store = credential_store or ParticipantCredentialStore()
        self.auth_token = auth_token
        self._participant_id: Optional[str] = None

    async def current_participant_id(self) -> str:
        if self._participant_id is None:
            participant_id = self.credential_store.get_participant_id(self.service.server_url)
            if participant_id is None:
                participant_id = await self._sign_in()
            self._participant_id = participant_id
            self.service.participant_id = participant_id
        return self._participant_id

    async def _sign_in(self) -> str:
        if self.auth_token:
            method, path, payload = "token", "auth/token/", {"token": self.auth_token}
        else:
            method, path, payload = "anonymous", "auth/anonymous/", None

        try:
            data = await self.service.request_json("POST", path, payload)
        except StoreError as exc:
            raise AuthenticationError(f"Sign-in failed: {exc}") from exc

        participant_id = data.get("uid")
        if not isinstance(participant_id, str) or not participant_id:
            raise AuthenticationError("Invalid server response")

        try:
            self.credential_store.save(participant_id, self.service.server_url, method)
        except (RuntimeError, OSError) as exc:
            raise AuthenticationError(f"Cannot store credentials: {exc}") from exc
        logger.debug("Signed in (%s) as %s", method, participant_id)
        return participant_id


class RemoteProfileStore:
    """ProfileStore backed by the document service."""

    def __init__(self, service: DocumentServiceClient, app_id: str):
        self.service = service
        self.collection = profiles_collection(app_id)

    def _path(self, participant_id: str) -> str:
        return f"documents/{self.collection}/{quote(participant_id, safe='')}"

    async def get(self, participant_id: str) -> Optional[Profile]:
        response = await self.service.request("GET", self._path(participant_id), allow_not_found=True)
        if response is None:
            return None
        try:
            data = response.json()
        except ValueError as exc:
            raise StoreError("Invalid server response") from exc
        display_name = data.get("displayName") if isinstance(data, dict) else None
        return Profile(participant_id=participant_id, display_name=display_name or "")

    async def set(self, participant_id: str, profile: Profile) -> None:
        await self.service.request("PUT", self._path(participant_id), profile.to_document())


class WebSocketSubscription:
    """Standing subscription to one collection over a WebSocket."""

    def __init__(
        self,
        uri: str,
        headers: dict[str, str],
        on_change: SnapshotHandler,
        on_error: ErrorHandler,
        open_timeout: float = 10.0,
    ):
        self.uri = uri
        self.headers = headers
        self.on_change = on_change
        self.on_error = on_error
        self.open_timeout = open_timeout
        self.ws: Optional[websockets.ClientConnection] = None
        self._listener: Optional[asyncio.Task] = None
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    async def open(self) -> None:
        try:
            self.ws = await websockets.connect(
                self.uri,
                additional_headers=self.headers,
                open_timeout=self.open_timeout,
            )
        except websockets.InvalidStatus as exc:
            raise StoreError(
                f"Subscription rejected: HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except (OSError, asyncio.TimeoutError, websockets.InvalidHandshake) as exc:
            raise StoreError(f"Cannot open subscription: {exc}") from exc

        self._active = True
        self._listener = asyncio.create_task(self._listen())
        logger.debug("Subscribed to %s", self.uri)

    async def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        if self._listener is not None and self._listener is not asyncio.current_task():
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
        self._listener = None
        if self.ws is not None:
            await self.ws.close()
            self.ws = None
        logger.debug("Unsubscribed from %s", self.uri)

    async def _listen(self):
        """Listen for messages from server"""
        try:
            async for message in self.ws:
                await self._handle_message(message)
        except ConnectionClosed:
            pass
        if self._active:
            self._active = False
            await self.on_error(StoreError("Connection closed by server"))

    async def _handle_message(self, message: str | bytes):
        try:
            data = json.loads(message)
        except ValueError:
            await self.on_error(StoreError("Malformed message from server"))
            return

        msg_type = data.get("type") if isinstance(data, dict) else None
        if msg_type == "snapshot":
            documents = _parse_documents(data.get("documents"))
            if documents is None:
                await self.on_error(StoreError("Malformed snapshot from server"))
            else:
                await self.on_change(documents)
        elif msg_type == "error":
            await self.on_error(StoreError(str(data.get("message") or "Subscription error")))
        elif msg_type == "ping":
            await self.ws.send(json.dumps({"type": "pong", "timestamp": data.get("timestamp")}))
        else:
            logger.debug("Ignoring message of type %r", msg_type)


def _parse_documents(raw: Any) -> Optional[list[Document]]:
    if not isinstance(raw, list):
        return None
    documents = []
    for item in raw:
        if not isinstance(item, dict):
            return None
        doc_id, data = item.get("id"), item.get("data")
        if not isinstance(doc_id, str) or not isinstance(data, dict):
            return None
        documents.append(Document(doc_id, data))
    return documents


class RemoteRosterStore:
    """RosterStore backed by the document service."""

    def __init__(self, service: DocumentServiceClient, app_id: str):
        self.service = service
        self.collection = flights_collection(app_id)

    def _path(self, doc_id: Optional[str] = None) -> str:
        if doc_id is None:
            return f"documents/{self.collection}"
        return f"documents/{self.collection}/{quote(doc_id, safe='')}"

    async def subscribe(self, on_change: SnapshotHandler, on_error: ErrorHandler) -> WebSocketSubscription:
        subscription = WebSocketSubscription(
            uri=f"{self.service.websocket_url}/ws/v1/collections/{self.collection}/",
            headers=self.service.auth_headers(),
            on_change=on_change,
            on_error=on_error,
            open_timeout=self.service.timeout,
        )
        await subscription.open()
        return subscription

    async def insert(self, fields: dict[str, Any]) -> str:
        data = await self.service.request_json("POST", self._path(), fields)
        doc_id = data.get("id")
        if not isinstance(doc_id, str) or not doc_id:
            raise StoreError("Invalid server response")
        return doc_id

    async def update(self, doc_id: str, partial_fields: dict[str, Any]) -> None:
        await self.service.request("PATCH", self._path(doc_id), partial_fields)

    async def delete(self, doc_id: str) -> None:
        await self.service.request("DELETE", self._path(doc_id))
