"""
Audit service for recording significant actions.

Events, attendees and subscription changes are written to the
``audit_logs`` table.  Audit writes are secondary: services call
:meth:`AuditService.record`, which logs and drops database failures so
that an audit problem never fails the user's request.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Optional

from ..core.db import get_connection

logger = logging.getLogger(__name__)


class AuditService:
    """Service class for writing audit logs."""

    @classmethod
    async def log(
        cls,
        user_id: Optional[int],
        action: str,
        object_type: str,
        object_id: Optional[int] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Insert a new audit record.

        Parameters
        ----------
        user_id : Optional[int]
            ID of the user performing the action.  ``None`` for
            system‑initiated actions such as webhooks.
        action : str
            Short description of the action (e.g. "create", "update", "delete").
        object_type : str
            Type of object affected (e.g. "event", "attendee", "user").
        object_id : Optional[int]
            Primary key of the affected object, if applicable.
        details : Optional[dict]
            Additional structured data about the action, stored as JSON.
        """
        conn = get_connection()
        try:
            details_json = json.dumps(details, default=str) if details else None
            conn.execute(
                """
                INSERT INTO audit_logs (user_id, action, object_type, object_id, details)
                VALUES (?, ?, ?, ?, ?)
                """,
                (user_id, action, object_type, object_id, details_json),
            )
            conn.commit()
        finally:
            conn.close()

    @classmethod
    async def record(cls, *args, **kwargs) -> None:
        """Like :meth:`log` but database failures are only logged."""
        try:
            await cls.log(*args, **kwargs)
        except sqlite3.Error as e:
            logger.warning("Failed to write audit log: %s", e)
