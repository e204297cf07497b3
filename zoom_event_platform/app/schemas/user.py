"""
Pydantic models for user data.

Users own events.  Each user carries a subscription tier that bounds
how many events they may create and how large and long those events
may be.
"""

from typing import Optional

from pydantic import BaseModel, Field, validator

from ..services.subscription_limits import SubscriptionTier


class UserBase(BaseModel):
    email: str = Field(..., example="host@example.com")
    first_name: Optional[str] = Field(None, example="Ada")
    last_name: Optional[str] = Field(None, example="Lovelace")

    @validator("email")
    def normalize_email(cls, value: str) -> str:
        value = value.strip().lower()
        local, _, domain = value.partition("@")
        if not local or "." not in domain:
            raise ValueError("A valid email address is required")
        return value


class UserCreate(UserBase):
    """Schema for registering a user.

    New accounts start on the ``TRIAL`` tier unless another tier is
    requested explicitly.
    """

    password: str = Field(..., min_length=8, example="strongpassword")
    subscription_tier: SubscriptionTier = SubscriptionTier.TRIAL


class UserLogin(BaseModel):
    email: str
    password: str


class UserRead(UserBase):
    id: int
    subscription_tier: SubscriptionTier
    subscription_status: str

    model_config = {
        "from_attributes": True,
    }
