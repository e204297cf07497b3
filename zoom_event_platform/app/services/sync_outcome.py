"""
Result types for event/meeting synchronisation.

A synchronised operation has two parts with different failure rules.
The local step (SQLite) is authoritative: if it fails the operation
fails with ``StoreError``.  The remote step (Zoom) is best effort: its
failure is recorded as a ``RemoteOutcome`` with status ``FAILED`` and
the operation still succeeds.  ``SyncResult`` carries both.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Optional

from ..core.errors import ZoomAPIError
from ..schemas.event import EventRead, MeetingInfo

logger = logging.getLogger(__name__)


class RemoteStatus(str, Enum):
    ATTACHED = "ATTACHED"
    UPDATED = "UPDATED"
    DELETED = "DELETED"
    # Event has no Zoom meeting, nothing to do.
    NOT_LINKED = "NOT_LINKED"
    # Linked, but nothing relevant to Zoom changed or no meeting was requested.
    SKIPPED = "SKIPPED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class RemoteOutcome:
    status: RemoteStatus
    meeting: Optional[MeetingInfo] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status in {RemoteStatus.ATTACHED, RemoteStatus.UPDATED, RemoteStatus.DELETED}

    @classmethod
    def skipped(cls) -> "RemoteOutcome":
        return cls(RemoteStatus.SKIPPED)

    @classmethod
    def not_linked(cls) -> "RemoteOutcome":
        return cls(RemoteStatus.NOT_LINKED)


@dataclass(frozen=True)
class LocalOutcome:
    """The persisted event, or the event as it was before deletion."""

    event: EventRead
    deleted: bool = False


@dataclass(frozen=True)
class SyncResult:
    local: LocalOutcome
    remote: RemoteOutcome

    @property
    def event(self) -> EventRead:
        return self.local.event

    @property
    def meeting(self) -> Optional[MeetingInfo]:
        return self.remote.meeting


async def attempt_remote(
    action: str,
    call: Awaitable[Optional[MeetingInfo]],
    success: RemoteStatus,
) -> RemoteOutcome:
    """Await a Zoom call and turn its result or failure into a ``RemoteOutcome``.

    Only ``ZoomAPIError`` is downgraded; anything else is a bug and
    propagates.
    """
    try:
        meeting = await call
    except ZoomAPIError as e:
        logger.warning("Zoom %s failed, continuing without it: %s", action, e.message)
        return RemoteOutcome(RemoteStatus.FAILED, error=e.message)
    return RemoteOutcome(success, meeting=meeting)
