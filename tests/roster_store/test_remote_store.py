"""Tests for the HTTP and WebSocket adapters, without a live server."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from flight_roster.errors import AuthenticationError, StoreError
from flight_roster.models import Profile
from flight_roster.notifications import RecordingNotifier
from flight_roster.store.credentials import ParticipantCredentialStore
from flight_roster.store.remote import (
    DocumentServiceClient,
    RemoteIdentityProvider,
    RemoteProfileStore,
    RemoteRosterStore,
    WebSocketSubscription,
    _parse_documents,
)
from flight_roster.sync.engine import RealtimeSyncEngine
from flight_roster.sync.identity import IdentityResolver

SERVER = "https://roster.example.com"
FLIGHTS = "/api/v1/documents/artifacts/app-1/public/data/flights"
PROFILES = "/api/v1/documents/artifacts/app-1/public/data/userProfiles"


def make_service(handler) -> DocumentServiceClient:
    """DocumentServiceClient whose HTTP traffic goes to ``handler``."""
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return DocumentServiceClient(SERVER, "wss://roster.example.com", timeout=5, http_client=http_client)


class RequestLog:
    """MockTransport handler that records requests and replays canned responses."""

    def __init__(self, *responses: httpx.Response):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)

    def body(self, index: int = -1):
        return json.loads(self.requests[index].content)


class TestDocumentServiceClient:
    @pytest.mark.asyncio
    async def test_error_status_becomes_store_error(self):
        service = make_service(RequestLog(httpx.Response(403, json={"detail": "Forbidden"})))
        with pytest.raises(StoreError) as exc_info:
            await service.request("GET", "documents/x")
        assert exc_info.value.status_code == 403
        assert str(exc_info.value) == "HTTP 403: Forbidden"

    @pytest.mark.asyncio
    async def test_transport_failure_becomes_store_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        service = make_service(handler)
        with pytest.raises(StoreError, match="Cannot reach server"):
            await service.request("GET", "documents/x")

    @pytest.mark.asyncio
    async def test_not_found_allowed(self):
        service = make_service(RequestLog(httpx.Response(404)))
        assert await service.request("GET", "documents/x", allow_not_found=True) is None

    @pytest.mark.asyncio
    async def test_non_object_json_rejected(self):
        service = make_service(RequestLog(httpx.Response(200, json=["not", "an", "object"])))
        with pytest.raises(StoreError, match="Invalid server response"):
            await service.request_json("GET", "documents/x")

    @pytest.mark.asyncio
    async def test_bearer_header_after_sign_in(self):
        log = RequestLog(httpx.Response(200, json={}))
        service = make_service(log)
        service.participant_id = "participant-1"

        await service.request("GET", "documents/x")

        assert log.requests[0].headers["Authorization"] == "Bearer participant-1"

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        service = make_service(RequestLog())
        await service.close()
        await service.close()


class TestRemoteIdentityProvider:
    @pytest.mark.asyncio
    async def test_anonymous_sign_in_is_persisted(self, tmp_path):
        log = RequestLog(httpx.Response(201, json={"uid": "participant-1"}))
        service = make_service(log)
        credentials = ParticipantCredentialStore(tmp_path / "credentials")
        provider = RemoteIdentityProvider(service, credentials)

        assert await provider.current_participant_id() == "participant-1"
        assert await provider.current_participant_id() == "participant-1"

        assert len(log.requests) == 1
        assert log.requests[0].url.path == "/api/v1/auth/anonymous/"
        assert credentials.get_participant_id(SERVER) == "participant-1"
        assert service.participant_id == "participant-1"

    @pytest.mark.asyncio
    async def test_token_sign_in(self, tmp_path):
        log = RequestLog(httpx.Response(200, json={"uid": "participant-2"}))
        provider = RemoteIdentityProvider(
            make_service(log), ParticipantCredentialStore(tmp_path / "credentials"), auth_token="secret"
        )

        assert await provider.current_participant_id() == "participant-2"
        assert log.requests[0].url.path == "/api/v1/auth/token/"
        assert log.body() == {"token": "secret"}

    @pytest.mark.asyncio
    async def test_stored_identity_skips_sign_in(self, tmp_path):
        log = RequestLog()
        credentials = ParticipantCredentialStore(tmp_path / "credentials")
        credentials.save("participant-9", SERVER, "anonymous")

        provider = RemoteIdentityProvider(make_service(log), credentials)

        assert await provider.current_participant_id() == "participant-9"
        assert log.requests == []

    @pytest.mark.asyncio
    async def test_rejected_sign_in(self, tmp_path):
        log = RequestLog(httpx.Response(401, json={"detail": "Invalid token"}))
        provider = RemoteIdentityProvider(make_service(log), ParticipantCredentialStore(tmp_path / "credentials"))

        with pytest.raises(AuthenticationError, match="Invalid token"):
            await provider.current_participant_id()

    @pytest.mark.asyncio
    async def test_response_without_uid(self, tmp_path):
        log = RequestLog(httpx.Response(200, json={"user": "x"}))
        provider = RemoteIdentityProvider(make_service(log), ParticipantCredentialStore(tmp_path / "credentials"))

        with pytest.raises(AuthenticationError, match="Invalid server response"):
            await provider.current_participant_id()

    @pytest.mark.asyncio
    async def test_credential_lock_timeout_is_an_authentication_error(self):
        credentials = MagicMock()
        credentials.get_participant_id.return_value = None
        credentials.save.side_effect = RuntimeError("Cannot acquire lock on credentials file.")
        log = RequestLog(httpx.Response(201, json={"uid": "participant-1"}))
        provider = RemoteIdentityProvider(make_service(log), credentials)

        with pytest.raises(AuthenticationError, match="Cannot store credentials"):
            await provider.current_participant_id()


class TestRemoteProfileStore:
    @pytest.mark.asyncio
    async def test_get_existing_profile(self):
        log = RequestLog(httpx.Response(200, json={"displayName": "CARGO777"}))
        profiles = RemoteProfileStore(make_service(log), "app-1")

        profile = await profiles.get("u1")

        assert profile == Profile(participant_id="u1", display_name="CARGO777")
        assert log.requests[0].url.path == f"{PROFILES}/u1"

    @pytest.mark.asyncio
    async def test_get_missing_profile(self):
        profiles = RemoteProfileStore(make_service(RequestLog(httpx.Response(404))), "app-1")
        assert await profiles.get("u1") is None

    @pytest.mark.asyncio
    async def test_set_overwrites_document(self):
        log = RequestLog(httpx.Response(200, json={}))
        profiles = RemoteProfileStore(make_service(log), "app-1")

        await profiles.set("u1", Profile(participant_id="u1", display_name="CARGO777"))

        assert log.requests[0].method == "PUT"
        assert log.body() == {"displayName": "CARGO777"}


class TestRemoteRosterStore:
    @pytest.mark.asyncio
    async def test_insert_returns_assigned_id(self):
        log = RequestLog(httpx.Response(201, json={"id": "f1"}))
        store = RemoteRosterStore(make_service(log), "app-1")

        doc_id = await store.insert({"flightNumber": "AA123", "signedUpUsers": []})

        assert doc_id == "f1"
        assert log.requests[0].method == "POST"
        assert log.requests[0].url.path == FLIGHTS
        assert log.body() == {"flightNumber": "AA123", "signedUpUsers": []}

    @pytest.mark.asyncio
    async def test_insert_without_id_fails(self):
        store = RemoteRosterStore(make_service(RequestLog(httpx.Response(201, json={}))), "app-1")
        with pytest.raises(StoreError):
            await store.insert({"flightNumber": "AA123"})

    @pytest.mark.asyncio
    async def test_update_is_a_merge_write(self):
        log = RequestLog(httpx.Response(200, json={}))
        store = RemoteRosterStore(make_service(log), "app-1")

        await store.update("f1", {"signedUpUsers": ["u1"]})

        assert log.requests[0].method == "PATCH"
        assert log.requests[0].url.path == f"{FLIGHTS}/f1"
        assert log.body() == {"signedUpUsers": ["u1"]}

    @pytest.mark.asyncio
    async def test_delete(self):
        log = RequestLog(httpx.Response(204))
        store = RemoteRosterStore(make_service(log), "app-1")

        await store.delete("f1")

        assert log.requests[0].method == "DELETE"
        assert log.requests[0].url.path == f"{FLIGHTS}/f1"

    @pytest.mark.asyncio
    async def test_subscribe_uri(self, monkeypatch):
        service = make_service(RequestLog())
        service.participant_id = "u1"
        opened = []

        async def fake_open(subscription):
            opened.append(subscription)

        monkeypatch.setattr(WebSocketSubscription, "open", fake_open)

        subscription = await RemoteRosterStore(service, "app-1").subscribe(AsyncMock(), AsyncMock())

        assert opened == [subscription]
        assert subscription.uri == "wss://roster.example.com/ws/v1/collections/artifacts/app-1/public/data/flights/"
        assert subscription.headers == {"Authorization": "Bearer u1"}
        assert subscription.open_timeout == 5


class TestWebSocketSubscription:
    def make_subscription(self):
        subscription = WebSocketSubscription("wss://x/ws", {}, AsyncMock(), AsyncMock())
        subscription.ws = MagicMock()
        subscription.ws.send = AsyncMock()
        return subscription

    @pytest.mark.asyncio
    async def test_snapshot_message(self):
        subscription = self.make_subscription()
        message = {"type": "snapshot", "documents": [{"id": "f1", "data": {"flightNumber": "AA123"}}]}

        await subscription._handle_message(json.dumps(message))

        documents = subscription.on_change.await_args.args[0]
        assert [(d.id, d.data) for d in documents] == [("f1", {"flightNumber": "AA123"})]
        subscription.on_error.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_malformed_snapshot(self):
        subscription = self.make_subscription()
        await subscription._handle_message(json.dumps({"type": "snapshot", "documents": {"f1": {}}}))

        subscription.on_change.assert_not_awaited()
        assert "Malformed snapshot" in str(subscription.on_error.await_args.args[0])

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        subscription = self.make_subscription()
        await subscription._handle_message("{not json")
        assert isinstance(subscription.on_error.await_args.args[0], StoreError)

    @pytest.mark.asyncio
    async def test_error_message(self):
        subscription = self.make_subscription()
        await subscription._handle_message(json.dumps({"type": "error", "message": "Permission denied"}))
        assert str(subscription.on_error.await_args.args[0]) == "Permission denied"

    @pytest.mark.asyncio
    async def test_ping_is_answered(self):
        subscription = self.make_subscription()
        await subscription._handle_message(json.dumps({"type": "ping", "timestamp": 42}))
        sent = json.loads(subscription.ws.send.await_args.args[0])
        assert sent == {"type": "pong", "timestamp": 42}

    @pytest.mark.asyncio
    async def test_unknown_message_ignored(self):
        subscription = self.make_subscription()
        await subscription._handle_message(json.dumps({"type": "presence"}))
        subscription.on_change.assert_not_awaited()
        subscription.on_error.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unsubscribe_closes_socket_once(self):
        subscription = self.make_subscription()
        ws = subscription.ws
        ws.close = AsyncMock()
        subscription._active = True

        await subscription.unsubscribe()
        await subscription.unsubscribe()

        ws.close.assert_awaited_once()
        assert subscription.active is False


class TestParseDocuments:
    def test_valid(self):
        documents = _parse_documents([{"id": "f1", "data": {}}, {"id": "f2", "data": {"a": 1}}])
        assert [d.id for d in documents] == ["f1", "f2"]

    @pytest.mark.parametrize(
        "raw",
        [None, {}, [{"id": "f1"}], [{"id": 1, "data": {}}], ["f1"]],
    )
    def test_invalid(self, raw):
        assert _parse_documents(raw) is None


class FakeSocket:
    """Async-iterable stand-in for a websockets connection."""

    def __init__(self, messages: list[str]):
        self.messages = messages
        self.send = AsyncMock()
        self.close = AsyncMock()

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for message in self.messages:
            yield message


class TestListenerWithEngine:
    @pytest.mark.asyncio
    async def test_pending_lookups_do_not_block_later_snapshots(self):
        async def hanging_get(participant_id):
            await asyncio.Event().wait()

        profiles = MagicMock()
        profiles.get = AsyncMock(side_effect=hanging_get)
        engine = RealtimeSyncEngine(MagicMock(), IdentityResolver(profiles), RecordingNotifier())
        flight = {"id": "f1", "data": {"flightNumber": "AA1", "signedUpUsers": ["x"]}}
        first = {"type": "snapshot", "documents": [flight]}
        second = {
            "type": "snapshot",
            "documents": [
                flight,
                {"id": "f2", "data": {"flightNumber": "BB2"}},
            ],
        }
        subscription = WebSocketSubscription("wss://x/ws", {}, engine._on_snapshot, engine._on_error)
        subscription.ws = FakeSocket([json.dumps(first), json.dumps(second)])
        subscription._active = True

        await asyncio.wait_for(subscription._listen(), timeout=1)

        assert [r.id for r in engine.view] == ["f1", "f2"]
        await asyncio.wait_for(engine.stop(), timeout=1)
