"""Price schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from paymirror.core.shared_models import BillingSchedule


class PriceRecord(BaseModel):
    """A provider price converted into the mirror's shape.

    The plan is referenced by its external id; the write path resolves it to the
    mirror's internal plan id.
    """

    provider: str = Field(..., description="Billing provider name")
    provider_id: str = Field(..., description="Provider-assigned price id")
    plan_provider_id: str = Field(..., description="Provider id of the owning plan")
    amount: int = Field(..., ge=0, description="Amount in the currency's smallest unit")
    currency: str = Field(..., min_length=3, max_length=3, description="ISO currency code")
    schedule: BillingSchedule = Field(..., description="Billing schedule")
    trial_days: int = Field(0, ge=0, description="Trial length in days")

    model_config = ConfigDict(frozen=True)


class Price(BaseModel):
    """Snapshot of a mirrored price row."""

    id: UUID
    provider: str
    provider_id: str
    plan_id: UUID
    amount: int
    currency: str
    schedule: BillingSchedule
    trial_days: int
    created_at: datetime
    modified_at: datetime

    model_config = ConfigDict(from_attributes=True, frozen=True)
