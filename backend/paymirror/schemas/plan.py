"""Plan schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PlanRecord(BaseModel):
    """A provider product converted into the mirror's plan shape."""

    provider: str = Field(..., description="Billing provider name")
    provider_id: str = Field(..., description="Provider-assigned product id")
    name: str = Field(..., description="Display name")
    description: Optional[str] = Field(None, description="Marketing description")
    active: bool = Field(True, description="Whether the plan can be purchased")

    model_config = ConfigDict(frozen=True)


class Plan(BaseModel):
    """Snapshot of a mirrored plan row."""

    id: UUID
    provider: str
    provider_id: str
    name: str
    description: Optional[str] = None
    active: bool
    created_at: datetime
    modified_at: datetime

    model_config = ConfigDict(from_attributes=True, frozen=True)
