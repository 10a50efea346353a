"""Price model."""

from uuid import UUID

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from paymirror.models._base import MirrorBase


class Price(MirrorBase):
    """A price of a plan, in the currency's smallest unit."""

    __tablename__ = "price"

    plan_id: Mapped[UUID] = mapped_column(ForeignKey("plan.id"), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    schedule: Mapped[str] = mapped_column(String(32), nullable=False)
    trial_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
