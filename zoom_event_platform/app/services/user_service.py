"""
Business logic for users and their subscriptions.
"""

import logging
import sqlite3
from typing import Optional

from ..core.db import get_connection, store_errors
from ..core.errors import ConflictError, NotFoundError
from ..core.security import hash_password, verify_password
from ..schemas.subscription import PlanRead, UsageRead
from ..schemas.user import UserCreate, UserRead
from .audit_service import AuditService
from .event_service import EventService
from .subscription_limits import UNLIMITED, SubscriptionTier, limits_for

logger = logging.getLogger(__name__)

USER_COLUMNS = "id, email, first_name, last_name, subscription_tier, subscription_status"


def plan_for(tier: SubscriptionTier) -> PlanRead:
    limits = limits_for(tier)
    return PlanRead(
        tier=tier,
        max_events=limits.max_events,
        max_attendees=limits.max_attendees,
        max_duration_minutes=limits.max_duration_minutes,
    )


class UserService:
    """Service for platform users."""

    @classmethod
    async def create_user(cls, data: UserCreate) -> UserRead:
        """Create a user with a hashed password.

        Raises ``ConflictError`` if the email is already registered.
        """
        logger.info("Registering user %s", data.email)
        with store_errors("create user"):
            conn = get_connection()
            try:
                try:
                    cursor = conn.execute(
                        "INSERT INTO users (email, first_name, last_name, password, subscription_tier) "
                        "VALUES (?, ?, ?, ?, ?)",
                        (
                            data.email,
                            data.first_name,
                            data.last_name,
                            hash_password(data.password),
                            data.subscription_tier.value,
                        ),
                    )
                except sqlite3.IntegrityError as e:
                    conn.rollback()
                    raise ConflictError(
                        "A user with this email already exists",
                        kind="EmailTaken",
                        details={"email": data.email},
                    ) from e
                user_id = cursor.lastrowid
                conn.commit()
            finally:
                conn.close()
        await AuditService.record(
            user_id=user_id,
            action="create",
            object_type="user",
            object_id=user_id,
            details={"email": data.email, "tier": data.subscription_tier.value},
        )
        return await cls.get_user(user_id)

    @classmethod
    async def get_user(cls, user_id: int) -> UserRead:
        with store_errors("load user"):
            conn = get_connection()
            try:
                row = conn.execute(
                    f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,)
                ).fetchone()
            finally:
                conn.close()
        if not row:
            raise NotFoundError(f"User {user_id} not found")
        return UserRead(**dict(row))

    @classmethod
    async def authenticate(cls, email: str, password: str) -> Optional[UserRead]:
        """Return the user if ``password`` matches, otherwise ``None``."""
        with store_errors("authenticate user"):
            conn = get_connection()
            try:
                row = conn.execute(
                    f"SELECT {USER_COLUMNS}, password FROM users WHERE email = ?",
                    (email.strip().lower(),),
                ).fetchone()
            finally:
                conn.close()
        if not row or not row["password"] or not verify_password(password, row["password"]):
            return None
        data = dict(row)
        data.pop("password")
        return UserRead(**data)

    @classmethod
    async def update_subscription(
        cls,
        user_id: int,
        tier: Optional[SubscriptionTier] = None,
        status: Optional[str] = None,
    ) -> UserRead:
        """Change a user's tier and/or subscription status.

        Existing events are not touched when a user downgrades; the new
        limits apply to events created or changed afterwards.
        """
        assignments = []
        params: list = []
        if tier is not None:
            assignments.append("subscription_tier = ?")
            params.append(SubscriptionTier(tier).value)
        if status is not None:
            assignments.append("subscription_status = ?")
            params.append(status)
        if assignments:
            with store_errors("update subscription"):
                conn = get_connection()
                try:
                    conn.execute(
                        f"UPDATE users SET {', '.join(assignments)}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                        tuple(params) + (user_id,),
                    )
                    conn.commit()
                finally:
                    conn.close()
            await AuditService.record(
                user_id=user_id,
                action="update",
                object_type="subscription",
                object_id=user_id,
                details={"tier": tier, "status": status},
            )
        return await cls.get_user(user_id)

    @classmethod
    async def get_usage(cls, current_user: dict) -> UsageRead:
        tier = SubscriptionTier(current_user["subscription_tier"])
        plan = plan_for(tier)
        event_count = await EventService.count_events(current_user["user_id"])
        remaining = None
        if plan.max_events != UNLIMITED:
            remaining = max(plan.max_events - event_count, 0)
        return UsageRead(
            tier=tier,
            status=current_user["subscription_status"],
            limits=plan,
            event_count=event_count,
            events_remaining=remaining,
        )
