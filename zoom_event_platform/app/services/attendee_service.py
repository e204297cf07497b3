"""
Business logic for attendee registration.

Registration is the one place where concurrent requests can race: two
registrations for the last seat must not both succeed.  The capacity
check and the counter increment are therefore a single conditional
``UPDATE`` inside an immediate write transaction, and the attendee row
is inserted in the same transaction.  SQLite serialises writers across
processes, so no in‑memory lock is involved.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import List

from ..core.db import get_connection, store_errors
from ..core.errors import DuplicateRegistrationError, EventFullError, NotFoundError
from ..schemas.attendee import AttendeeCreate, AttendeeRead
from .audit_service import AuditService
from .event_service import EventService

logger = logging.getLogger(__name__)

ATTENDEE_COLUMNS = "id, event_id, email, first_name, last_name, status, join_url, registration_time"


class AttendeeService:
    """Service for event attendees."""

    @classmethod
    async def register_attendee(
        cls, event_id: int, data: AttendeeCreate, current_user: dict
    ) -> AttendeeRead:
        """Register an attendee for an owned event.

        Raises ``NotFoundError`` if the event does not exist or is not
        owned by the caller, ``EventFullError`` when
        ``current_attendees`` has reached ``max_attendees`` and
        ``DuplicateRegistrationError`` when the email is already
        registered.  The event's Zoom join URL is copied onto the
        attendee as it is at this moment.
        """
        user_id = current_user["user_id"]
        await EventService.get_owned_event(event_id, user_id)

        with store_errors("register attendee"):
            conn = get_connection()
            try:
                conn.execute("BEGIN IMMEDIATE")
                claimed = conn.execute(
                    """
                    UPDATE events
                    SET current_attendees = current_attendees + 1
                    WHERE id = ? AND current_attendees < max_attendees
                    """,
                    (event_id,),
                ).rowcount
                if not claimed:
                    counts = conn.execute(
                        "SELECT max_attendees, current_attendees FROM events WHERE id = ?", (event_id,)
                    ).fetchone()
                    conn.rollback()
                    if counts is None:
                        raise NotFoundError(f"Event {event_id} not found", details={"event_id": event_id})
                    raise EventFullError(
                        f"Maximum {counts['max_attendees']} attendees allowed",
                        details={"limit": counts["max_attendees"], "current": counts["current_attendees"]},
                    )
                join_url = conn.execute(
                    "SELECT zoom_join_url FROM events WHERE id = ?", (event_id,)
                ).fetchone()["zoom_join_url"]
                try:
                    cursor = conn.execute(
                        """
                        INSERT INTO attendees (event_id, email, first_name, last_name, join_url)
                        VALUES (?, ?, ?, ?, ?)
                        """,
                        (event_id, data.email, data.first_name, data.last_name, join_url),
                    )
                except sqlite3.IntegrityError as e:
                    conn.rollback()
                    raise DuplicateRegistrationError(
                        "This email is already registered for the event",
                        details={"email": data.email, "event_id": event_id},
                    ) from e
                attendee_id = cursor.lastrowid
                conn.commit()
                row = conn.execute(
                    f"SELECT {ATTENDEE_COLUMNS} FROM attendees WHERE id = ?", (attendee_id,)
                ).fetchone()
            finally:
                conn.close()

        logger.info("Registered %s for event %s", data.email, event_id)
        await AuditService.record(
            user_id=user_id,
            action="create",
            object_type="attendee",
            object_id=attendee_id,
            details={"event_id": event_id, "email": data.email},
        )
        return AttendeeRead(**dict(row))

    @classmethod
    async def list_attendees(cls, event_id: int, current_user: dict) -> List[AttendeeRead]:
        await EventService.get_owned_event(event_id, current_user["user_id"])
        with store_errors("list attendees"):
            conn = get_connection()
            try:
                rows = conn.execute(
                    f"SELECT {ATTENDEE_COLUMNS} FROM attendees WHERE event_id = ? "
                    "ORDER BY registration_time DESC, id DESC",
                    (event_id,),
                ).fetchall()
            finally:
                conn.close()
        return [AttendeeRead(**dict(row)) for row in rows]

    @classmethod
    async def set_status_by_email(cls, zoom_meeting_id: str, email: str, status: str) -> int:
        """Update the status of the attendee with ``email`` on the event linked to a meeting."""
        with store_errors("update attendee status"):
            conn = get_connection()
            try:
                cursor = conn.execute(
                    """
                    UPDATE attendees SET status = ?
                    WHERE email = ? AND event_id IN (SELECT id FROM events WHERE zoom_meeting_id = ?)
                    """,
                    (status, email.strip().lower(), zoom_meeting_id),
                )
                conn.commit()
                return cursor.rowcount
            finally:
                conn.close()

