"""CRUD operations for the webhook event ledger."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paymirror import schemas
from paymirror.models import WebhookEvent


class CRUDWebhookEvent:
    """Ledger access. Entries are only ever added, never updated or removed."""

    async def get(self, db: AsyncSession, *, provider: str, event_id: str) -> Optional[WebhookEvent]:
        """Get a ledger entry by its event identity."""
        return await db.get(WebhookEvent, (provider, event_id))

    async def exists(self, db: AsyncSession, *, provider: str, event_id: str) -> bool:
        """Whether the event has been accepted before."""
        result = await db.execute(
            select(WebhookEvent.event_id).where(
                WebhookEvent.provider == provider, WebhookEvent.event_id == event_id
            )
        )
        return result.first() is not None

    async def add(self, db: AsyncSession, *, obj_in: schemas.WebhookEventCreate) -> WebhookEvent:
        """Stage a new entry and flush it; the caller decides when to commit.

        Raises:
        ------
            sqlalchemy.exc.IntegrityError: If the event was recorded concurrently.

        """
        db_obj = WebhookEvent(**obj_in.model_dump())
        db.add(db_obj)
        await db.flush()
        return db_obj


webhook_event = CRUDWebhookEvent()
