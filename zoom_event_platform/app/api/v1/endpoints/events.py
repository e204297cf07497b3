"""
Event endpoints for API v1.

CRUD for the caller's events plus attendee registration.  Every route
is scoped to the authenticated owner; events owned by someone else
answer 404.  Zoom failures never turn into error responses here: the
event is returned without Zoom linkage fields instead.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from zoom_event_platform.app.core.errors import PlatformError, to_http_exception
from zoom_event_platform.app.core.security import get_current_user, require_active_subscription
from zoom_event_platform.app.schemas.attendee import AttendeeCreate, AttendeeRead
from zoom_event_platform.app.schemas.event import (
    EventCreate,
    EventCreateResponse,
    EventDetail,
    EventList,
    EventUpdate,
    EventUpdateResponse,
)
from zoom_event_platform.app.services.attendee_service import AttendeeService
from zoom_event_platform.app.services.event_service import EventService


router = APIRouter()


@router.get("/", response_model=EventList)
async def list_events(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: Optional[str] = Query(None, alias="status"),
    event_type: Optional[str] = Query(None, alias="type"),
    current_user: dict = Depends(get_current_user),
) -> EventList:
    """List the caller's events, newest start time first."""
    try:
        return await EventService.list_events(
            current_user["user_id"], page=page, limit=limit, status=status_filter, event_type=event_type
        )
    except PlatformError as e:
        raise to_http_exception(e) from e


@router.post("/", response_model=EventCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    event: EventCreate,
    current_user: dict = Depends(require_active_subscription),
) -> EventCreateResponse:
    """Create an event and its Zoom meeting.

    Subscription limits are enforced first and answer 403 with the
    limit and the offending value.  If Zoom is unavailable the event
    is still created and ``zoom_meeting`` is ``null``.
    """
    try:
        result = await EventService.create_event_with_meeting(event, current_user)
    except PlatformError as e:
        raise to_http_exception(e) from e
    return EventCreateResponse(event=result.event, zoom_meeting=result.meeting)


@router.get("/{event_id}", response_model=EventDetail)
async def get_event(
    event_id: int,
    current_user: dict = Depends(get_current_user),
) -> EventDetail:
    try:
        return await EventService.get_event(event_id, current_user["user_id"])
    except PlatformError as e:
        raise to_http_exception(e) from e


@router.put("/{event_id}", response_model=EventUpdateResponse)
async def update_event(
    event_id: int,
    updates: EventUpdate,
    current_user: dict = Depends(get_current_user),
) -> EventUpdateResponse:
    """Update an event.

    Partial updates are supported.  ``zoom_synced`` tells whether the
    linked Zoom meeting was updated as well.
    """
    try:
        result = await EventService.update_event_and_meeting(event_id, updates, current_user)
    except PlatformError as e:
        raise to_http_exception(e) from e
    return EventUpdateResponse(event=result.event, zoom_synced=result.remote.succeeded)


@router.delete("/{event_id}")
async def delete_event(
    event_id: int,
    current_user: dict = Depends(get_current_user),
) -> dict:
    """Delete an event, its attendees and its Zoom meeting."""
    try:
        result = await EventService.delete_event_and_meeting(event_id, current_user)
    except PlatformError as e:
        raise to_http_exception(e) from e
    return {"message": "Event deleted successfully", "zoom_deleted": result.remote.succeeded}


@router.get("/{event_id}/attendees", response_model=List[AttendeeRead])
async def list_attendees(
    event_id: int,
    current_user: dict = Depends(get_current_user),
) -> List[AttendeeRead]:
    try:
        return await AttendeeService.list_attendees(event_id, current_user)
    except PlatformError as e:
        raise to_http_exception(e) from e


@router.post(
    "/{event_id}/attendees",
    response_model=AttendeeRead,
    status_code=status.HTTP_201_CREATED,
)
async def register_attendee(
    event_id: int,
    attendee: AttendeeCreate,
    current_user: dict = Depends(get_current_user),
) -> AttendeeRead:
    """Register an attendee.

    Answers 409 with ``EventFull`` when no seats are left and with
    ``DuplicateRegistration`` when the email is already registered.
    """
    try:
        return await AttendeeService.register_attendee(event_id, attendee, current_user)
    except PlatformError as e:
        raise to_http_exception(e) from e
