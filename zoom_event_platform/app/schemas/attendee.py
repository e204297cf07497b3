"""
Pydantic models for event attendees.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, validator


class AttendeeCreate(BaseModel):
    email: str = Field(..., example="jane@example.com")
    first_name: str = Field(..., min_length=1, example="Jane")
    last_name: str = Field(..., min_length=1, example="Doe")

    @validator("email")
    def normalize_email(cls, value: str) -> str:
        value = value.strip().lower()
        local, _, domain = value.partition("@")
        if not local or "." not in domain:
            raise ValueError("A valid email address is required")
        return value

    @validator("first_name", "last_name")
    def strip_names(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name must not be empty")
        return value


class AttendeeRead(BaseModel):
    id: int
    event_id: int
    email: str
    first_name: str
    last_name: str
    status: str = "REGISTERED"
    # Zoom join URL copied from the event at registration time.
    join_url: Optional[str] = None
    registration_time: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }
