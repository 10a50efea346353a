"""Customer schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class CustomerRecord(BaseModel):
    """A provider customer converted into the mirror's shape."""

    provider: str = Field(..., description="Billing provider name")
    provider_id: str = Field(..., description="Provider-assigned customer id")
    name: str = Field("", description="Customer name")
    email: str = Field("", description="Customer email")

    model_config = ConfigDict(frozen=True)


class Customer(BaseModel):
    """Snapshot of a mirrored customer row."""

    id: UUID
    provider: str
    provider_id: str
    name: str
    email: str
    user_id: Optional[str] = None
    created_at: datetime
    modified_at: datetime

    model_config = ConfigDict(from_attributes=True, frozen=True)
