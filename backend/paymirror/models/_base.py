"""Base models for the application."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import UUID, DateTime, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column


def utc_now_naive() -> datetime:
    """Current UTC time without tzinfo, for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all models."""


class MirrorBase(Base):
    """Base class for tables mirroring a provider-owned entity.

    The internal ``id`` is assigned on first insert and never derived from the
    external identity ``(provider, provider_id)``, which is unique per table.
    """

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(UUID, primary_key=True, default=uuid.uuid4)
    provider: Mapped[str] = mapped_column(String(32), nullable=False)
    provider_id: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, nullable=False)
    modified_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now_naive, onupdate=utc_now_naive, nullable=False
    )

    @declared_attr.directive
    def __table_args__(cls) -> tuple:
        """External identity uniqueness, enforced by storage."""
        return (
            UniqueConstraint("provider", "provider_id", name=f"uq_{cls.__tablename__}_external"),
        )
