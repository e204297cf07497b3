"""
Pydantic models for the Zoom proxy and webhook endpoints.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class SDKSignatureRequest(BaseModel):
    meeting_number: str = Field(..., example="85746065432")
    # 0 = participant, 1 = host
    role: int = Field(0, ge=0, le=1)


class SDKSignatureRead(BaseModel):
    signature: str
    meeting_number: str
    role: int
    sdk_key: str
    user_name: str
    user_email: str


class WebhookEvent(BaseModel):
    event: str
    event_ts: Optional[int] = None
    payload: Dict[str, Any] = Field(default_factory=dict)
