"""Test fixtures for the Zoom Event Platform.

Provides:
- A fresh SQLite database file per test, migrated with ``init_db``
- ``FakeZoom``, a ``ZoomService`` whose meeting calls never leave the process
- A factory for users on a given subscription tier
- An async HTTP client bound to the FastAPI app
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from zoom_event_platform.app.core.config import settings
from zoom_event_platform.app.core.db import init_db
from zoom_event_platform.app.core.errors import ZoomAPIError
from zoom_event_platform.app.schemas.event import EventCreate, MeetingInfo
from zoom_event_platform.app.schemas.user import UserCreate
from zoom_event_platform.app.services import zoom_service as zoom_module
from zoom_event_platform.app.services.user_service import UserService
from zoom_event_platform.app.services.zoom_service import ZoomService

WEBHOOK_SECRET = "whsec-test"


class FakeZoom(ZoomService):
    """ZoomService with in-memory meetings.

    Set ``fail`` to make every meeting call raise ``ZoomAPIError``.
    ``calls`` records ``(operation, *arguments)`` tuples in order.
    """

    def __init__(self) -> None:
        super().__init__(
            account_id="account",
            client_id="client",
            client_secret="secret",
            webhook_secret=WEBHOOK_SECRET,
            sdk_key="sdk-key",
            sdk_secret="sdk-secret",
        )
        self.fail = False
        self.calls: List[tuple] = []
        self._next_id = 85000000000

    def _check(self) -> None:
        if self.fail:
            raise ZoomAPIError("Zoom is unavailable", status_code=503)

    async def create_meeting(self, meeting_data: Dict[str, Any]) -> MeetingInfo:
        self.calls.append(("create", meeting_data))
        self._check()
        self._next_id += 1
        meeting_id = str(self._next_id)
        return MeetingInfo(
            id=meeting_id,
            join_url=f"https://zoom.us/j/{meeting_id}",
            host_url=f"https://zoom.us/s/{meeting_id}",
            password="pw123",
        )

    async def update_meeting(self, meeting_id: str, update_data: Dict[str, Any]) -> MeetingInfo:
        self.calls.append(("update", meeting_id, update_data))
        self._check()
        return MeetingInfo(
            id=meeting_id,
            join_url=f"https://zoom.us/j/{meeting_id}?v=2",
            host_url=f"https://zoom.us/s/{meeting_id}?v=2",
            password="pw456",
        )

    async def delete_meeting(self, meeting_id: str) -> None:
        self.calls.append(("delete", meeting_id))
        self._check()

    async def get_meeting(self, meeting_id: str) -> Dict[str, Any]:
        self.calls.append(("get", meeting_id))
        self._check()
        return {"id": int(meeting_id), "topic": "Fake meeting", "status": "waiting"}

    async def get_meeting_participants(self, meeting_id: str) -> List[Dict[str, Any]]:
        self.calls.append(("participants", meeting_id))
        self._check()
        return [{"name": "Jane Doe", "user_email": "jane@example.com"}]

    def operations(self) -> List[str]:
        return [call[0] for call in self.calls]


def future(days: int = 7, minutes: int = 0) -> datetime:
    """A whole-second UTC datetime ``days`` from now, shifted by ``minutes``."""
    base = (datetime.now(timezone.utc) + timedelta(days=days)).replace(microsecond=0)
    return base + timedelta(minutes=minutes)


def event_payload(
    title: str = "Product launch",
    minutes: int = 60,
    start: Optional[datetime] = None,
    **overrides: Any,
) -> EventCreate:
    start = start or future()
    data: Dict[str, Any] = {
        "title": title,
        "description": "Launch walkthrough",
        "start_time": start,
        "end_time": start + timedelta(minutes=minutes),
    }
    data.update(overrides)
    return EventCreate(**data)


@pytest.fixture(autouse=True)
def database(tmp_path, monkeypatch) -> str:
    """Point the app at an empty database file and migrate it."""
    db_file = str(tmp_path / "test.db")
    monkeypatch.setattr(settings, "database_url", db_file)
    init_db()
    return db_file


@pytest.fixture
def zoom(monkeypatch) -> FakeZoom:
    """A FakeZoom installed as the shared client used by the API."""
    fake = FakeZoom()
    monkeypatch.setattr(zoom_module, "zoom_service", fake)
    return fake


@pytest_asyncio.fixture
async def make_user():
    """Factory creating a user and returning the payload ``get_current_user`` would."""
    counter = {"n": 0}

    async def _make(tier: str = "TRIAL", email: Optional[str] = None) -> Dict[str, Any]:
        counter["n"] += 1
        email = email or f"host{counter['n']}@example.com"
        user = await UserService.create_user(
            UserCreate(email=email, password="strongpassword", subscription_tier=tier)
        )
        return {
            "sub": user.email,
            "user_id": user.id,
            "subscription_tier": user.subscription_tier.value,
            "subscription_status": user.subscription_status,
        }

    return _make


@pytest_asyncio.fixture
async def client(zoom) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing the API."""
    from zoom_event_platform.app.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
