"""
Business logic for events and their Zoom meetings.

``EventService`` keeps each local event in step with a Zoom meeting on
a best‑effort basis:

* create – the tier policy is checked first; a denial happens before
  any Zoom call or insert.  The Zoom meeting is then created and the
  event is stored with or without its linkage fields depending on
  whether Zoom answered.
* update – the Zoom meeting is patched when a field Zoom knows about
  changed; failure is logged and the local update goes ahead.
* delete – the Zoom meeting is deleted first when linked; the local
  event is deleted whatever Zoom says.

The local database is the source of truth.  Zoom failures are never
retried here and drift is left for a later sync.
"""

from __future__ import annotations

import json
import logging
import math
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..core.db import get_connection, store_errors
from ..core.errors import NotFoundError, ValidationError
from ..schemas.attendee import AttendeeRead
from ..schemas.event import EventCreate, EventDetail, EventList, EventRead, EventUpdate
from . import zoom_service as zoom_module
from .audit_service import AuditService
from .subscription_limits import duration_minutes, evaluate_event_shape, evaluate_tier_limits, limits_for
from .sync_outcome import LocalOutcome, RemoteOutcome, RemoteStatus, SyncResult, attempt_remote
from .zoom_service import ZoomService, format_zoom_time

logger = logging.getLogger(__name__)

EVENT_COLUMNS = (
    "id, title, description, type, status, start_time, end_time, timezone, max_attendees, "
    "current_attendees, dashboard_template, settings, user_id, zoom_meeting_id, zoom_join_url, "
    "zoom_password, zoom_host_url, created_at, updated_at"
)

# Local field name -> Zoom meeting field name.
ZOOM_FIELD_MAP = {
    "title": "topic",
    "description": "agenda",
    "start_time": "start_time",
}
ZOOM_RELEVANT_FIELDS = {"title", "description", "start_time", "end_time"}


def to_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _row_to_event(row: sqlite3.Row) -> EventRead:
    data = dict(row)
    raw_settings = data.get("settings")
    try:
        data["settings"] = json.loads(raw_settings) if raw_settings else {}
    except json.JSONDecodeError:
        logger.error("Event %s has malformed settings JSON", data["id"])
        data["settings"] = {}
    return EventRead(**data)


def _resolve_zoom(zoom: Optional[ZoomService]) -> ZoomService:
    return zoom if zoom is not None else zoom_module.zoom_service


class EventService:
    """Service for events owned by platform users."""

    @classmethod
    async def count_events(cls, user_id: int) -> int:
        with store_errors("count events"):
            conn = get_connection()
            try:
                row = conn.execute(
                    "SELECT COUNT(*) AS count FROM events WHERE user_id = ?", (user_id,)
                ).fetchone()
                return row["count"]
            finally:
                conn.close()

    @classmethod
    async def create_event_with_meeting(
        cls,
        data: EventCreate,
        current_user: dict,
        zoom: Optional[ZoomService] = None,
    ) -> SyncResult:
        """Create an event and, if requested, its Zoom meeting.

        Raises ``ValidationError`` for bad times and
        ``LimitExceededError`` when the owner's tier does not allow the
        event; neither touches Zoom or writes to the database.  A Zoom
        failure leaves the event without linkage fields and
        ``result.meeting`` is ``None``.
        """
        zoom = _resolve_zoom(zoom)
        user_id = current_user["user_id"]
        tier = current_user["subscription_tier"]
        start = to_utc(data.start_time)
        end = to_utc(data.end_time)

        if start <= datetime.now(timezone.utc):
            raise ValidationError("Start time must be in the future", kind="InvalidStartTime")
        if end <= start:
            raise ValidationError("End time must be after start time", kind="InvalidEndTime")

        duration = duration_minutes(start, end)
        max_attendees = data.max_attendees or limits_for(tier).max_attendees
        existing = await cls.count_events(user_id)
        evaluate_tier_limits(tier, existing, max_attendees, duration).raise_for_denial()

        if data.create_zoom_meeting:
            meeting_data = {
                "topic": data.title,
                "start_time": format_zoom_time(start),
                "duration": duration,
                "timezone": data.timezone,
                "agenda": data.description or "",
                "settings": data.settings,
            }
            remote = await attempt_remote(
                "meeting creation", zoom.create_meeting(meeting_data), RemoteStatus.ATTACHED
            )
        else:
            remote = RemoteOutcome.skipped()

        meeting = remote.meeting
        try:
            with store_errors("create event"):
                conn = get_connection()
                try:
                    cursor = conn.execute(
                        """
                        INSERT INTO events (
                            title, description, type, start_time, end_time, timezone,
                            max_attendees, dashboard_template, settings, user_id,
                            zoom_meeting_id, zoom_join_url, zoom_password, zoom_host_url
                        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            data.title,
                            data.description,
                            data.type,
                            start.isoformat(),
                            end.isoformat(),
                            data.timezone,
                            max_attendees,
                            data.dashboard_template,
                            json.dumps(data.settings),
                            user_id,
                            meeting.id if meeting else None,
                            meeting.join_url if meeting else None,
                            meeting.password if meeting else None,
                            meeting.host_url if meeting else None,
                        ),
                    )
                    event_id = cursor.lastrowid
                    conn.commit()
                    row = conn.execute(
                        f"SELECT {EVENT_COLUMNS} FROM events WHERE id = ?", (event_id,)
                    ).fetchone()
                finally:
                    conn.close()
        except Exception:
            if meeting:
                # The event was never stored; do not leave its meeting behind.
                await attempt_remote("orphan cleanup", zoom.delete_meeting(meeting.id), RemoteStatus.DELETED)
            raise

        event = _row_to_event(row)
        logger.info(
            "User %s created event %s (zoom: %s)", user_id, event.id, remote.status.value
        )
        await AuditService.record(
            user_id=user_id,
            action="create",
            object_type="event",
            object_id=event.id,
            details={"title": event.title, "zoom": remote.status.value},
        )
        return SyncResult(LocalOutcome(event), remote)

    @classmethod
    async def list_events(
        cls,
        user_id: int,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
        event_type: Optional[str] = None,
    ) -> EventList:
        """Return a page of the user's events, newest start time first."""
        where_clauses = ["user_id = ?"]
        params: List[Any] = [user_id]
        if status:
            where_clauses.append("status = ?")
            params.append(status.upper())
        if event_type:
            where_clauses.append("type = ?")
            params.append(event_type.upper())
        where = " AND ".join(where_clauses)
        offset = (page - 1) * limit

        with store_errors("list events"):
            conn = get_connection()
            try:
                total = conn.execute(
                    f"SELECT COUNT(*) AS count FROM events WHERE {where}", tuple(params)
                ).fetchone()["count"]
                rows = conn.execute(
                    f"SELECT {EVENT_COLUMNS} FROM events WHERE {where} "
                    "ORDER BY start_time DESC LIMIT ? OFFSET ?",
                    tuple(params + [limit, offset]),
                ).fetchall()
            finally:
                conn.close()
        return EventList(
            events=[_row_to_event(row) for row in rows],
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if limit else 0,
        )

    @classmethod
    async def get_owned_event(cls, event_id: int, user_id: int) -> EventRead:
        """Return the event if it exists and belongs to ``user_id``."""
        with store_errors("load event"):
            conn = get_connection()
            try:
                row = conn.execute(
                    f"SELECT {EVENT_COLUMNS} FROM events WHERE id = ? AND user_id = ?",
                    (event_id, user_id),
                ).fetchone()
            finally:
                conn.close()
        if not row:
            raise NotFoundError(f"Event {event_id} not found", details={"event_id": event_id})
        return _row_to_event(row)

    @classmethod
    async def get_event_by_meeting(cls, zoom_meeting_id: str, user_id: int) -> EventRead:
        """Return the caller's event linked to ``zoom_meeting_id``."""
        with store_errors("load event"):
            conn = get_connection()
            try:
                row = conn.execute(
                    f"SELECT {EVENT_COLUMNS} FROM events WHERE zoom_meeting_id = ? AND user_id = ?",
                    (zoom_meeting_id, user_id),
                ).fetchone()
            finally:
                conn.close()
        if not row:
            raise NotFoundError(
                f"No event linked to meeting {zoom_meeting_id}", details={"meeting_id": zoom_meeting_id}
            )
        return _row_to_event(row)

    @classmethod
    async def get_event(cls, event_id: int, user_id: int) -> EventDetail:
        """Return an owned event together with its attendees."""
        event = await cls.get_owned_event(event_id, user_id)
        with store_errors("load attendees"):
            conn = get_connection()
            try:
                rows = conn.execute(
                    "SELECT id, event_id, email, first_name, last_name, status, join_url, registration_time "
                    "FROM attendees WHERE event_id = ? ORDER BY registration_time DESC, id DESC",
                    (event_id,),
                ).fetchall()
            finally:
                conn.close()
        return EventDetail(
            **event.model_dump(),
            attendees=[AttendeeRead(**dict(row)) for row in rows],
        )

    @classmethod
    async def update_event_and_meeting(
        cls,
        event_id: int,
        updates: EventUpdate,
        current_user: dict,
        zoom: Optional[ZoomService] = None,
    ) -> SyncResult:
        """Update an owned event and push relevant changes to Zoom.

        Only fields present in ``updates`` are changed.  New attendee
        caps and durations are checked against the owner's tier.  The
        Zoom meeting is patched only when title, description, start or
        end actually changed; its failure does not block the update.
        """
        zoom = _resolve_zoom(zoom)
        user_id = current_user["user_id"]
        tier = current_user["subscription_tier"]
        existing = await cls.get_owned_event(event_id, user_id)

        changes: Dict[str, Any] = {
            key: value
            for key, value in updates.model_dump(exclude_unset=True).items()
            if value is not None or key == "description"
        }
        for key in ("start_time", "end_time"):
            if key in changes:
                changes[key] = to_utc(changes[key])
        # Keep only values that differ from what is stored.
        changes = {key: value for key, value in changes.items() if getattr(existing, key) != value}

        start = changes.get("start_time", to_utc(existing.start_time))
        end = changes.get("end_time", to_utc(existing.end_time))
        times_changed = "start_time" in changes or "end_time" in changes
        if "start_time" in changes and start <= datetime.now(timezone.utc):
            raise ValidationError("Start time must be in the future", kind="InvalidStartTime")
        if times_changed and end <= start:
            raise ValidationError("End time must be after start time", kind="InvalidEndTime")
        if "max_attendees" in changes and changes["max_attendees"] < existing.current_attendees:
            raise ValidationError(
                "Max attendees cannot be lower than the number of registered attendees",
                kind="InvalidMaxAttendees",
                details={"current": existing.current_attendees, "requested": changes["max_attendees"]},
            )
        evaluate_event_shape(
            tier,
            requested_attendees=changes.get("max_attendees"),
            requested_duration_minutes=duration_minutes(start, end) if times_changed else None,
        ).raise_for_denial()

        zoom_changes = ZOOM_RELEVANT_FIELDS.intersection(changes)
        if not existing.has_meeting:
            remote = RemoteOutcome.not_linked()
        elif not zoom_changes:
            remote = RemoteOutcome.skipped()
        else:
            zoom_update: Dict[str, Any] = {}
            for local_field, zoom_field in ZOOM_FIELD_MAP.items():
                if local_field in changes:
                    value = changes[local_field]
                    zoom_update[zoom_field] = format_zoom_time(value) if local_field == "start_time" else (value or "")
            if times_changed:
                zoom_update["duration"] = duration_minutes(start, end)
            remote = await attempt_remote(
                "meeting update",
                zoom.update_meeting(existing.zoom_meeting_id, zoom_update),
                RemoteStatus.UPDATED,
            )

        columns: Dict[str, Any] = {}
        for key, value in changes.items():
            if key in ("start_time", "end_time"):
                columns[key] = value.isoformat()
            elif key == "settings":
                columns[key] = json.dumps(value)
            else:
                columns[key] = value
        if remote.meeting:
            columns["zoom_join_url"] = remote.meeting.join_url
            columns["zoom_password"] = remote.meeting.password
            columns["zoom_host_url"] = remote.meeting.host_url

        with store_errors("update event"):
            conn = get_connection()
            try:
                if columns:
                    assignments = ", ".join(f"{column} = ?" for column in columns)
                    conn.execute(
                        f"UPDATE events SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                        tuple(columns.values()) + (event_id,),
                    )
                    conn.commit()
                row = conn.execute(
                    f"SELECT {EVENT_COLUMNS} FROM events WHERE id = ?", (event_id,)
                ).fetchone()
            finally:
                conn.close()
        if row is None:
            raise NotFoundError(f"Event {event_id} not found", details={"event_id": event_id})

        event = _row_to_event(row)
        if columns:
            await AuditService.record(
                user_id=user_id,
                action="update",
                object_type="event",
                object_id=event_id,
                details={"fields": sorted(changes), "zoom": remote.status.value},
            )
        return SyncResult(LocalOutcome(event), remote)

    @classmethod
    async def delete_event_and_meeting(
        cls,
        event_id: int,
        current_user: dict,
        zoom: Optional[ZoomService] = None,
    ) -> SyncResult:
        """Delete an owned event, its attendees and its Zoom meeting.

        The Zoom meeting is deleted first to avoid orphans, but the
        local delete happens even if Zoom fails.
        """
        zoom = _resolve_zoom(zoom)
        user_id = current_user["user_id"]
        existing = await cls.get_owned_event(event_id, user_id)

        if existing.has_meeting:
            remote = await attempt_remote(
                "meeting deletion", zoom.delete_meeting(existing.zoom_meeting_id), RemoteStatus.DELETED
            )
        else:
            remote = RemoteOutcome.not_linked()

        with store_errors("delete event"):
            conn = get_connection()
            try:
                conn.execute("DELETE FROM attendees WHERE event_id = ?", (event_id,))
                conn.execute("DELETE FROM events WHERE id = ?", (event_id,))
                conn.commit()
            finally:
                conn.close()

        logger.info("User %s deleted event %s (zoom: %s)", user_id, event_id, remote.status.value)
        await AuditService.record(
            user_id=user_id,
            action="delete",
            object_type="event",
            object_id=event_id,
            details={"zoom": remote.status.value},
        )
        return SyncResult(LocalOutcome(existing, deleted=True), remote)

    @classmethod
    async def set_status_for_meeting(cls, zoom_meeting_id: str, status: str) -> int:
        """Set the status of the event linked to a Zoom meeting.

        Returns the number of events updated; zero when no event is
        linked to the meeting.
        """
        with store_errors("update event status"):
            conn = get_connection()
            try:
                cursor = conn.execute(
                    "UPDATE events SET status = ?, updated_at = CURRENT_TIMESTAMP WHERE zoom_meeting_id = ?",
                    (status, zoom_meeting_id),
                )
                conn.commit()
                return cursor.rowcount
            finally:
                conn.close()
