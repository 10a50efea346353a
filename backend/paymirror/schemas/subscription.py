"""Subscription schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class SubscriptionRecord(BaseModel):
    """A provider subscription converted into the mirror's shape."""

    provider: str = Field(..., description="Billing provider name")
    provider_id: str = Field(..., description="Provider-assigned subscription id")
    customer_provider_id: str = Field(..., description="Provider id of the customer")
    price_provider_id: str = Field(..., description="Provider id of the subscribed price")
    active: bool = Field(False, description="Whether the subscription grants access")
    status: str = Field(..., description="Provider status, e.g. active, trialing, past_due")
    started_at: Optional[datetime] = Field(None, description="When the provider created it")

    model_config = ConfigDict(frozen=True)


class Subscription(BaseModel):
    """Snapshot of a mirrored subscription row."""

    id: UUID
    provider: str
    provider_id: str
    customer_id: UUID
    price_id: UUID
    active: bool
    status: str
    started_at: Optional[datetime] = None
    created_at: datetime
    modified_at: datetime

    model_config = ConfigDict(from_attributes=True, frozen=True)
