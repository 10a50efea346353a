"""Webhook event schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProviderEvent(BaseModel):
    """A verified provider event, reduced to what the mirror needs."""

    provider: str
    event_id: str
    event_type: str
    record: dict[str, Any] = Field(..., description="The object the event is about")
    payload: dict[str, Any] = Field(..., description="The full event body as delivered")

    model_config = ConfigDict(frozen=True)


class WebhookEventCreate(BaseModel):
    """Ledger entry to insert for a newly accepted event."""

    provider: str
    event_id: str
    event_type: str
    payload: dict[str, Any]


class WebhookEvent(BaseModel):
    """Snapshot of a ledger entry."""

    provider: str
    event_id: str
    event_type: str
    payload: dict[str, Any]
    processed: bool
    received_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WebhookReceipt(BaseModel):
    """Result of accepting a webhook request."""

    event_id: str
    event_type: str
    duplicate: bool = False
