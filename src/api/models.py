"""
Request and response models for the HTTP API.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime


class MessageRequest(BaseModel):
    """Inbound chat message."""

    user_id: str = Field(..., min_length=1, description="Sender identity.")
    text: str = Field("", description="Message text; mentions are stripped.")
    channel_id: Optional[str] = Field(
        None, description="Conversation scope; omitted for direct messages."
    )


class MessageResponse(BaseModel):
    response: str
    continue_flow: bool


class SendMessageRequest(BaseModel):
    """Direct message to a single identity."""

    message: Optional[str] = None
    userId: Optional[str] = None


class SendMessageResponse(BaseModel):
    success: bool
    userId: str
    message: str
