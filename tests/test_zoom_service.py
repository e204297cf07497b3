"""Tests for the Zoom API client against an httpx mock transport."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
from typing import Any, Dict, List

import httpx
import pytest

from zoom_event_platform.app.core.errors import ZoomAPIError
from zoom_event_platform.app.services.zoom_service import ZoomService, format_zoom_time

API = "https://api.zoom.test/v2"
OAUTH = "https://zoom.test/oauth/token"


class FakeClock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class ZoomBackend:
    """Scripted Zoom API.  ``responses`` maps ``(method, path)`` to a list of responses."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.token_requests = 0
        self.responses: Dict[tuple, List[httpx.Response]] = {}

    def add(self, method: str, path: str, status_code: int = 200, body: Any = None) -> None:
        response = httpx.Response(status_code, json=body) if body is not None else httpx.Response(status_code)
        self.responses.setdefault((method, path), []).append(response)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/oauth/token":
            self.token_requests += 1
            return httpx.Response(200, json={"access_token": f"token-{self.token_requests}", "expires_in": 3600})
        key = (request.method, request.url.path.replace("/v2", "", 1))
        queued = self.responses.get(key)
        if not queued:
            return httpx.Response(404, json={"code": 3001, "message": "Meeting does not exist"})
        return queued.pop(0) if len(queued) > 1 else queued[0]

    def api_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path != "/oauth/token"]


@pytest.fixture
def backend() -> ZoomBackend:
    return ZoomBackend()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def client(backend, clock) -> ZoomService:
    return ZoomService(
        account_id="acct",
        client_id="client-id",
        client_secret="client-secret",
        base_url=API,
        oauth_url=OAUTH,
        timeout=5,
        webhook_secret="whsec",
        sdk_key="sdk-key",
        sdk_secret="sdk-secret",
        transport=httpx.MockTransport(backend),
        clock=clock,
    )


# ── Authentication ───────────────────────────────────────────────────────────


async def test_token_request_uses_account_credentials(client, backend):
    token = await client.get_access_token()

    assert token == "token-1"
    request = backend.requests[0]
    assert request.method == "POST"
    assert request.url.params["grant_type"] == "account_credentials"
    assert request.url.params["account_id"] == "acct"
    expected = base64.b64encode(b"client-id:client-secret").decode()
    assert request.headers["Authorization"] == f"Basic {expected}"


async def test_token_is_cached_until_safety_margin(client, backend, clock):
    backend.add("GET", "/meetings/1", body={"id": 1})

    await client.get_meeting("1")
    clock.now += 3600 - 300 - 1
    await client.get_meeting("1")
    assert backend.token_requests == 1

    clock.now += 1
    await client.get_meeting("1")
    assert backend.token_requests == 2
    assert backend.api_requests()[-1].headers["Authorization"] == "Bearer token-2"


async def test_unauthorized_response_invalidates_token(client, backend):
    backend.add("GET", "/meetings/1", status_code=401, body={"code": 124, "message": "Invalid access token."})
    backend.add("GET", "/meetings/1", body={"id": 1})

    with pytest.raises(ZoomAPIError) as exc_info:
        await client.get_meeting("1")
    assert exc_info.value.remote_status == 401
    assert exc_info.value.status_code == 502

    assert await client.get_meeting("1") == {"id": 1}
    assert backend.token_requests == 2


async def test_token_failure_raises(backend, clock):
    def rejecting(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"reason": "Invalid client_id or client_secret"})

    client = ZoomService(
        account_id="acct", client_id="bad", client_secret="bad",
        base_url=API, oauth_url=OAUTH, transport=httpx.MockTransport(rejecting), clock=clock,
    )
    with pytest.raises(ZoomAPIError) as exc_info:
        await client.get_access_token()
    assert exc_info.value.remote_status == 400


@pytest.mark.parametrize(
    "body",
    [
        {"access_token": "t", "expires_in": "soon"},
        {"access_token": "t", "expires_in": None},
        ["access_token", "t"],
        {"expires_in": 3600},
    ],
)
async def test_malformed_token_response_raises(clock, body):
    def token_endpoint(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=body)

    client = ZoomService(
        account_id="acct", client_id="id", client_secret="secret",
        base_url=API, oauth_url=OAUTH, transport=httpx.MockTransport(token_endpoint), clock=clock,
    )
    with pytest.raises(ZoomAPIError):
        await client.get_access_token()


# ── Meetings ─────────────────────────────────────────────────────────────────


async def test_meeting_without_id_raises(client, backend):
    backend.add("PATCH", "/meetings/42", status_code=204)
    backend.add("GET", "/meetings/42", body={"topic": "Renamed", "join_url": "https://zoom.us/j/42"})
    with pytest.raises(ZoomAPIError):
        await client.update_meeting("42", {"topic": "Renamed"})


async def test_non_object_body_raises(client, backend):
    backend.add("GET", "/meetings/42", body=[{"id": 42}])
    with pytest.raises(ZoomAPIError):
        await client.get_meeting("42")


async def test_create_meeting_merges_defaults(client, backend):
    backend.add(
        "POST",
        "/users/me/meetings",
        status_code=201,
        body={
            "id": 85746065432,
            "join_url": "https://zoom.us/j/85746065432",
            "start_url": "https://zoom.us/s/85746065432",
            "password": "abc123",
        },
    )

    meeting = await client.create_meeting(
        {"topic": "Launch", "duration": 45, "settings": {"waiting_room": False}}
    )

    assert meeting.id == "85746065432"
    assert meeting.host_url == "https://zoom.us/s/85746065432"
    assert meeting.password == "abc123"
    sent = json.loads(backend.api_requests()[0].content)
    assert sent["topic"] == "Launch"
    assert sent["duration"] == 45
    assert sent["type"] == 2
    assert len(sent["password"]) == 8
    assert sent["settings"]["waiting_room"] is False
    assert sent["settings"]["mute_upon_entry"] is True


async def test_create_meeting_without_id_raises(client, backend):
    backend.add("POST", "/users/me/meetings", status_code=201, body={"topic": "Launch"})
    with pytest.raises(ZoomAPIError):
        await client.create_meeting({"topic": "Launch"})


async def test_update_meeting_patches_then_reads(client, backend):
    backend.add("PATCH", "/meetings/42", status_code=204)
    backend.add("GET", "/meetings/42", body={"id": 42, "join_url": "https://zoom.us/j/42", "password": "new"})

    meeting = await client.update_meeting("42", {"topic": "Renamed"})

    methods = [r.method for r in backend.api_requests()]
    assert methods == ["PATCH", "GET"]
    assert json.loads(backend.api_requests()[0].content) == {"topic": "Renamed"}
    assert meeting.id == "42"
    assert meeting.password == "new"


async def test_delete_meeting_accepts_empty_response(client, backend):
    backend.add("DELETE", "/meetings/42", status_code=204)
    assert await client.delete_meeting("42") is None


async def test_error_message_from_zoom_body(client):
    with pytest.raises(ZoomAPIError) as exc_info:
        await client.get_meeting("missing")
    assert exc_info.value.message == "Meeting does not exist"
    assert exc_info.value.remote_status == 404


async def test_transport_error_raises(clock):
    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = ZoomService(
        account_id="acct", client_id="id", client_secret="secret",
        base_url=API, oauth_url=OAUTH, transport=httpx.MockTransport(unreachable), clock=clock,
    )
    with pytest.raises(ZoomAPIError) as exc_info:
        await client.delete_meeting("42")
    assert exc_info.value.remote_status is None


async def test_list_meetings_and_participants(client, backend):
    backend.add("GET", "/users/me/meetings", body={"meetings": [{"id": 1}, {"id": 2}]})
    backend.add("GET", "/meetings/1/participants", body={"participants": [{"name": "Jane"}]})

    assert [m["id"] for m in await client.list_meetings()] == [1, 2]
    assert backend.api_requests()[0].url.params["type"] == "scheduled"
    assert await client.get_meeting_participants("1") == [{"name": "Jane"}]


async def test_user_info_keeps_profile_fields(client, backend):
    backend.add(
        "GET",
        "/users/me",
        body={"id": "u1", "email": "owner@example.com", "type": 2, "pic_url": "https://zoom.us/p/u1"},
    )
    info = await client.get_user_info()
    assert info["email"] == "owner@example.com"
    assert info["type"] == 2
    assert info["timezone"] is None
    assert "pic_url" not in info


def test_format_zoom_time():
    from datetime import datetime, timedelta, timezone

    aware = datetime(2030, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    assert format_zoom_time(aware) == "2030-01-01T10:00:00Z"
    assert format_zoom_time(datetime(2030, 1, 1, 12, 0)) == "2030-01-01T12:00:00Z"


# ── Webhooks and SDK ─────────────────────────────────────────────────────────


def test_validate_webhook(client):
    body = b'{"event":"meeting.started"}'
    digest = hmac.new(b"whsec", body, hashlib.sha256).hexdigest()

    assert client.validate_webhook(body, f"sha256={digest}")
    assert not client.validate_webhook(body, "sha256=deadbeef")
    assert not client.validate_webhook(body, None)
    assert not client.validate_webhook(b'{"event":"meeting.ended"}', f"sha256={digest}")


def test_webhook_rejected_without_secret(clock):
    client = ZoomService(webhook_secret="", clock=clock)
    assert not client.validate_webhook(b"{}", "sha256=anything")


def test_encrypt_plain_token(client):
    expected = hmac.new(b"whsec", b"plain", hashlib.sha256).hexdigest()
    assert client.encrypt_plain_token("plain") == expected


def test_sdk_signature(client, clock):
    result = client.generate_sdk_signature("85746065432", 1, user_email="host@example.com")

    header_b64, payload_b64, signature_b64 = result["signature"].split(".")
    payload = json.loads(base64.urlsafe_b64decode(payload_b64 + "=" * (-len(payload_b64) % 4)))
    assert payload["mn"] == "85746065432"
    assert payload["role"] == 1
    assert payload["sdkKey"] == "sdk-key"
    assert payload["iat"] == int(clock.now) - 30
    assert payload["exp"] - payload["iat"] == 7200

    expected = hmac.new(b"sdk-secret", f"{header_b64}.{payload_b64}".encode(), hashlib.sha256).digest()
    assert base64.urlsafe_b64encode(expected).rstrip(b"=").decode() == signature_b64
    assert result["user_email"] == "host@example.com"


def test_sdk_signature_requires_credentials(clock):
    client = ZoomService(sdk_key="", sdk_secret="", clock=clock)
    with pytest.raises(ZoomAPIError):
        client.generate_sdk_signature("1")
