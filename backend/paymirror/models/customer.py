"""Customer model."""

from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from paymirror.models._base import MirrorBase


class Customer(MirrorBase):
    """A paying customer attached to a billing provider."""

    __tablename__ = "customer"

    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    # Local application user; never written by sync or webhooks
    user_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
