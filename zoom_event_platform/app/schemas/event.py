"""
Pydantic models for event data.

``EventCreate`` and ``EventUpdate`` describe request bodies;
``EventRead`` is the stored event including its Zoom linkage fields.
Business validation that depends on the clock or on the caller's
subscription (start in the future, tier limits) happens in
``EventService``, not here.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, validator

from .attendee import AttendeeRead

EVENT_TYPES = {"MEETING", "WEBINAR", "WORKSHOP", "CONFERENCE"}
EVENT_STATUSES = {"SCHEDULED", "LIVE", "ENDED", "CANCELLED"}


def _check_event_type(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.upper()
    if value not in EVENT_TYPES:
        raise ValueError(f"type must be one of {sorted(EVENT_TYPES)}")
    return value


class EventBase(BaseModel):
    title: str = Field(..., min_length=1, example="Quarterly all-hands")
    description: Optional[str] = Field(None, example="Company updates and Q&A")
    type: str = Field("MEETING", example="MEETING")
    start_time: datetime = Field(..., example="2030-09-01T10:00:00Z")
    end_time: datetime = Field(..., example="2030-09-01T11:00:00Z")
    timezone: str = Field("UTC", example="Europe/Berlin")
    dashboard_template: str = Field("CLASSIC", example="CLASSIC")

    @validator("title")
    def strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Title is required")
        return value

    @validator("type")
    def check_type(cls, value: str) -> str:
        return _check_event_type(value)


class EventCreate(EventBase):
    """Schema for creating an event.

    ``max_attendees`` defaults to the subscription tier's limit when
    omitted.  ``settings`` are merged over the default Zoom meeting
    settings.  Set ``create_zoom_meeting`` to false to create a local
    event without a Zoom meeting.
    """

    max_attendees: Optional[int] = Field(None, ge=1, example=50)
    settings: Dict[str, Any] = Field(default_factory=dict)
    create_zoom_meeting: bool = True


class EventUpdate(BaseModel):
    """Schema for updating an event.

    All fields are optional; only provided fields will be updated.
    """

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    type: Optional[str] = None
    status: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    timezone: Optional[str] = None
    max_attendees: Optional[int] = Field(None, ge=1)
    dashboard_template: Optional[str] = None
    settings: Optional[Dict[str, Any]] = None

    @validator("title")
    def strip_title(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("Title must not be empty")
        return value

    @validator("type")
    def check_type(cls, value: Optional[str]) -> Optional[str]:
        return _check_event_type(value)

    @validator("status")
    def check_status(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.upper()
        if value not in EVENT_STATUSES:
            raise ValueError(f"status must be one of {sorted(EVENT_STATUSES)}")
        return value


class EventRead(EventBase):
    """Schema for reading an event from the API."""

    id: int
    user_id: int
    status: str = "SCHEDULED"
    max_attendees: int
    current_attendees: int = 0
    settings: Dict[str, Any] = Field(default_factory=dict)
    zoom_meeting_id: Optional[str] = None
    zoom_join_url: Optional[str] = None
    zoom_password: Optional[str] = None
    zoom_host_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }

    @property
    def has_meeting(self) -> bool:
        return bool(self.zoom_meeting_id)


class EventDetail(EventRead):
    attendees: List[AttendeeRead] = Field(default_factory=list)


class MeetingInfo(BaseModel):
    """Normalised view of a Zoom meeting linked to an event."""

    id: str
    join_url: Optional[str] = None
    host_url: Optional[str] = None
    password: Optional[str] = None


class EventCreateResponse(BaseModel):
    message: str = "Event created successfully"
    event: EventRead
    zoom_meeting: Optional[MeetingInfo] = None


class EventUpdateResponse(BaseModel):
    message: str = "Event updated successfully"
    event: EventRead
    zoom_synced: bool = False


class EventList(BaseModel):
    events: List[EventRead]
    total: int
    page: int
    limit: int
    total_pages: int
