"""Data contracts for inbound Agora webhook notifications."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class WebhookEvent(BaseModel):
    """Authenticated, normalized notification."""

    notice_id: str
    product_id: int
    event_type: int
    event_name: str = Field(..., description="Readable name, 'unknown_event' for new codes")
    notify_timestamp: int = Field(..., description="Provider send time, epoch milliseconds")
    session_id: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)


class WebhookAck(BaseModel):
    status: str = "success"
    event_name: str
    notice_id: str
