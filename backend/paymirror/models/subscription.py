"""Subscription model and its application-user association."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Table
from sqlalchemy.orm import Mapped, mapped_column

from paymirror.models._base import Base, MirrorBase

subscription_user = Table(
    "subscription_user",
    Base.metadata,
    Column(
        "subscription_id",
        ForeignKey("subscription.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("user_id", String(255), primary_key=True),
)


class Subscription(MirrorBase):
    """A customer's subscription to a price."""

    __tablename__ = "subscription"

    customer_id: Mapped[UUID] = mapped_column(
        ForeignKey("customer.id"), nullable=False, index=True
    )
    price_id: Mapped[UUID] = mapped_column(ForeignKey("price.id"), nullable=False, index=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
