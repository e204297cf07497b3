"""
Client for the Zoom REST API.

``ZoomService`` authenticates with Server‑to‑Server OAuth, caches the
access token in process memory and wraps the meeting endpoints used
by the platform.  Requests are made with ``httpx.AsyncClient`` and are
bounded by ``settings.zoom_timeout_seconds``.  No call is retried:
every transport or HTTP failure is raised as ``ZoomAPIError`` and the
caller decides whether it matters.

The token cache is overwritten wholesale on refresh.  Two concurrent
refreshes only cost a redundant token request.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import string
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import httpx

from ..core.config import settings
from ..core.errors import ZoomAPIError
from ..core.security import encode_jwt
from ..schemas.event import MeetingInfo

logger = logging.getLogger(__name__)

SCHEDULED_MEETING = 2

DEFAULT_MEETING_SETTINGS: Dict[str, Any] = {
    "host_video": True,
    "participant_video": True,
    "join_before_host": False,
    "mute_upon_entry": True,
    "watermark": False,
    "use_pmi": False,
    "approval_type": 2,
    "audio": "both",
    "auto_recording": "none",
    "waiting_room": True,
    "registrants_email_notification": True,
    "meeting_authentication": False,
}


def format_zoom_time(value: datetime) -> str:
    """Format a datetime the way Zoom expects ``start_time`` (UTC, ``Z`` suffix)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def to_meeting_info(data: Dict[str, Any]) -> MeetingInfo:
    """Normalise a Zoom meeting payload to the fields stored on an event.

    Raises ``ZoomAPIError`` when the payload has no meeting id or a
    field of the wrong type.
    """
    try:
        return MeetingInfo(
            id=str(data["id"]),
            join_url=data.get("join_url"),
            host_url=data.get("start_url"),
            password=data.get("password"),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ZoomAPIError("Zoom returned a malformed meeting") from e


class ZoomService:
    """Zoom API client with an in‑memory access token cache."""

    # Refresh the token this many seconds before Zoom says it expires.
    TOKEN_SAFETY_MARGIN = 300

    def __init__(
        self,
        *,
        account_id: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        base_url: Optional[str] = None,
        oauth_url: Optional[str] = None,
        timeout: Optional[float] = None,
        webhook_secret: Optional[str] = None,
        sdk_key: Optional[str] = None,
        sdk_secret: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.account_id = account_id if account_id is not None else settings.zoom_account_id
        self.client_id = client_id if client_id is not None else settings.zoom_client_id
        self.client_secret = client_secret if client_secret is not None else settings.zoom_client_secret
        self.base_url = (base_url or settings.zoom_api_base_url).rstrip("/")
        self.oauth_url = oauth_url or settings.zoom_oauth_url
        self.timeout = timeout if timeout is not None else settings.zoom_timeout_seconds
        self.webhook_secret = webhook_secret if webhook_secret is not None else settings.zoom_webhook_secret
        self.sdk_key = sdk_key if sdk_key is not None else settings.zoom_sdk_key
        self.sdk_secret = sdk_secret if sdk_secret is not None else settings.zoom_sdk_secret
        self._transport = transport
        self._clock = clock
        self._access_token: Optional[str] = None
        self._token_expiry: float = 0.0

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def invalidate_token(self) -> None:
        self._access_token = None
        self._token_expiry = 0.0

    async def get_access_token(self) -> str:
        """Return a cached access token, requesting a new one when needed."""
        if self._access_token and self._token_expiry > self._clock():
            return self._access_token

        try:
            async with self._client() as client:
                response = await client.post(
                    self.oauth_url,
                    params={"grant_type": "account_credentials", "account_id": self.account_id},
                    auth=(self.client_id, self.client_secret),
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error("Zoom token request rejected: %s %s", e.response.status_code, e.response.text)
            raise ZoomAPIError("Failed to get Zoom access token", status_code=e.response.status_code) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Zoom token request failed: %s", e)
            raise ZoomAPIError("Failed to get Zoom access token") from e

        if not isinstance(data, dict) or not data.get("access_token"):
            raise ZoomAPIError("Zoom token response did not contain an access token")
        token = str(data["access_token"])
        try:
            expires_in = int(data.get("expires_in", 3600))
        except (TypeError, ValueError) as e:
            raise ZoomAPIError("Zoom token response has an invalid expiry") from e
        self._access_token = token
        self._token_expiry = self._clock() + expires_in - self.TOKEN_SAFETY_MARGIN
        return token

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Make an authenticated API request and return the decoded body."""
        token = await self.get_access_token()
        try:
            async with self._client() as client:
                response = await client.request(
                    method,
                    f"{self.base_url}{endpoint}",
                    json=json,
                    params=params,
                    headers={"Authorization": f"Bearer {token}"},
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 401:
                # Token revoked or expired early; force a refresh next time.
                self.invalidate_token()
            message = _error_message(e.response)
            logger.warning("Zoom API %s %s failed: %s", method, endpoint, message)
            raise ZoomAPIError(message, status_code=e.response.status_code) from e
        except httpx.HTTPError as e:
            logger.warning("Zoom API %s %s failed: %s", method, endpoint, e)
            raise ZoomAPIError("Zoom API request failed") from e

        if response.status_code == 204 or not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as e:
            raise ZoomAPIError("Zoom API returned an invalid response") from e
        if not isinstance(body, dict):
            raise ZoomAPIError("Zoom API returned an invalid response")
        return body

    # ------------------------------------------------------------------
    # Meetings
    # ------------------------------------------------------------------

    async def create_meeting(self, meeting_data: Dict[str, Any]) -> MeetingInfo:
        """Create a scheduled meeting for the account owner (``users/me``).

        ``meeting_data`` is merged over defaults; its ``settings`` are
        merged over :data:`DEFAULT_MEETING_SETTINGS`.
        """
        meeting = {
            "type": SCHEDULED_MEETING,
            "duration": 60,
            "timezone": "UTC",
            "password": self.generate_password(),
            **meeting_data,
        }
        meeting["settings"] = {**DEFAULT_MEETING_SETTINGS, **(meeting_data.get("settings") or {})}
        result = await self._request("POST", "/users/me/meetings", json=meeting)
        if "id" not in result:
            raise ZoomAPIError("Zoom did not return a meeting id")
        logger.info("Created Zoom meeting %s", result["id"])
        return to_meeting_info(result)

    async def get_meeting(self, meeting_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/meetings/{meeting_id}")

    async def update_meeting(self, meeting_id: str, update_data: Dict[str, Any]) -> MeetingInfo:
        """Patch a meeting and return its refreshed linkage fields."""
        await self._request("PATCH", f"/meetings/{meeting_id}", json=update_data)
        return to_meeting_info(await self.get_meeting(meeting_id))

    async def delete_meeting(self, meeting_id: str) -> None:
        await self._request("DELETE", f"/meetings/{meeting_id}")
        logger.info("Deleted Zoom meeting %s", meeting_id)

    async def list_meetings(self, meeting_type: str = "scheduled") -> List[Dict[str, Any]]:
        response = await self._request(
            "GET", "/users/me/meetings", params={"type": meeting_type, "page_size": 30}
        )
        return response.get("meetings") or []

    async def get_meeting_participants(self, meeting_id: str) -> List[Dict[str, Any]]:
        response = await self._request("GET", f"/meetings/{meeting_id}/participants")
        return response.get("participants") or []

    async def get_user_info(self) -> Dict[str, Any]:
        user = await self._request("GET", "/users/me")
        fields = (
            "id", "first_name", "last_name", "email", "type", "pmi",
            "timezone", "verified", "created_at", "last_login_time",
        )
        return {key: user.get(key) for key in fields}

    @staticmethod
    def generate_password(length: int = 8) -> str:
        alphabet = string.ascii_letters + string.digits
        return "".join(secrets.choice(alphabet) for _ in range(length))

    # ------------------------------------------------------------------
    # Meeting SDK and webhooks
    # ------------------------------------------------------------------

    def generate_sdk_signature(
        self, meeting_number: str, role: int = 0, *, user_name: str = "", user_email: str = ""
    ) -> Dict[str, Any]:
        """Sign a Meeting SDK join token valid for two hours."""
        if not self.sdk_key or not self.sdk_secret:
            raise ZoomAPIError("Zoom SDK credentials are not configured")
        issued_at = int(self._clock()) - 30
        expires_at = issued_at + 60 * 60 * 2
        claims = {
            "appKey": self.sdk_key,
            "sdkKey": self.sdk_key,
            "mn": meeting_number,
            "role": role,
            "iat": issued_at,
            "exp": expires_at,
            "tokenExp": expires_at,
        }
        return {
            "signature": encode_jwt(claims, self.sdk_secret),
            "meeting_number": meeting_number,
            "role": role,
            "sdk_key": self.sdk_key,
            "user_name": user_name,
            "user_email": user_email,
        }

    def _hmac_hex(self, message: bytes) -> str:
        return hmac.new(self.webhook_secret.encode("utf-8"), message, hashlib.sha256).hexdigest()

    def validate_webhook(self, body: bytes, signature: Optional[str]) -> bool:
        """Check ``signature`` against ``sha256=<hex HMAC of body>``."""
        if not self.webhook_secret or not signature:
            return False
        expected = f"sha256={self._hmac_hex(body)}"
        return hmac.compare_digest(expected, signature)

    def encrypt_plain_token(self, plain_token: str) -> str:
        """Answer Zoom's ``endpoint.url_validation`` challenge."""
        return self._hmac_hex(plain_token.encode("utf-8"))


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"Zoom API request failed with status {response.status_code}"


# Shared client used by the API.  Tests build their own instances or
# pass a fake to the services.
zoom_service = ZoomService()
