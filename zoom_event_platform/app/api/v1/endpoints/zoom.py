"""
Zoom endpoints for API v1.

Read‑only proxies for meetings linked to the caller's events, Meeting
SDK signatures for the web client and the webhook receiver.  Unlike
the event routes, a Zoom failure here is the whole answer and is
returned as 502.
"""

import json
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError as PydanticValidationError

from zoom_event_platform.app.core.errors import PlatformError, to_http_exception
from zoom_event_platform.app.core.security import get_current_user
from zoom_event_platform.app.schemas.zoom import SDKSignatureRead, SDKSignatureRequest, WebhookEvent
from zoom_event_platform.app.services import zoom_service as zoom_module
from zoom_event_platform.app.services.event_service import EventService
from zoom_event_platform.app.services.webhook_service import WebhookService


router = APIRouter()

SIGNATURE_HEADER = "x-zm-signature"


@router.get("/meetings/{meeting_id}")
async def get_meeting(
    meeting_id: str,
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    try:
        await EventService.get_event_by_meeting(meeting_id, current_user["user_id"])
        return await zoom_module.zoom_service.get_meeting(meeting_id)
    except PlatformError as e:
        raise to_http_exception(e) from e


@router.get("/meetings/{meeting_id}/participants")
async def get_meeting_participants(
    meeting_id: str,
    current_user: dict = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    try:
        await EventService.get_event_by_meeting(meeting_id, current_user["user_id"])
        return await zoom_module.zoom_service.get_meeting_participants(meeting_id)
    except PlatformError as e:
        raise to_http_exception(e) from e


@router.post("/signature", response_model=SDKSignatureRead)
async def create_sdk_signature(
    request: SDKSignatureRequest,
    current_user: dict = Depends(get_current_user),
) -> SDKSignatureRead:
    """Sign a Meeting SDK join token for one of the caller's meetings."""
    try:
        await EventService.get_event_by_meeting(request.meeting_number, current_user["user_id"])
        signature = zoom_module.zoom_service.generate_sdk_signature(
            request.meeting_number,
            request.role,
            user_email=current_user.get("sub", ""),
        )
    except PlatformError as e:
        raise to_http_exception(e) from e
    return SDKSignatureRead(**signature)


@router.post("/webhook")
async def receive_webhook(request: Request) -> Dict[str, Any]:
    """Receive a Zoom webhook notification.

    The raw body must carry a valid ``x-zm-signature``.  URL validation
    challenges are answered with the encrypted plain token.
    """
    zoom = zoom_module.zoom_service
    body = await request.body()
    if not zoom.validate_webhook(body, request.headers.get(SIGNATURE_HEADER)):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook signature")
    try:
        event = WebhookEvent(**json.loads(body))
    except (ValueError, TypeError, PydanticValidationError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Malformed webhook payload") from e

    if event.event == "endpoint.url_validation":
        plain_token = str(event.payload.get("plainToken", ""))
        return {"plainToken": plain_token, "encryptedToken": zoom.encrypt_plain_token(plain_token)}

    try:
        return await WebhookService.process_event(event)
    except PlatformError as e:
        raise to_http_exception(e) from e
