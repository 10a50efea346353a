"""CRUD operations for subscriptions and their application users."""

from uuid import UUID

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from paymirror import schemas
from paymirror.crud._base import CRUDMirror
from paymirror.models import Subscription, subscription_user


class CRUDSubscription(CRUDMirror[Subscription, schemas.Subscription]):
    """CRUD operations for subscriptions.

    The application users attached to a subscription are local-only data kept in
    the ``subscription_user`` association table; they go away with the
    subscription row.
    """

    async def get_by_customer(self, db: AsyncSession, *, customer_id: UUID) -> list[Subscription]:
        """All subscriptions held by a customer."""
        result = await db.execute(
            select(Subscription)
            .where(Subscription.customer_id == customer_id)
            .order_by(Subscription.created_at)
        )
        return list(result.scalars().all())

    async def get_by_user(self, db: AsyncSession, *, user_id: str) -> list[Subscription]:
        """Subscriptions an application user is attached to."""
        query = (
            select(Subscription)
            .join(subscription_user, subscription_user.c.subscription_id == Subscription.id)
            .where(subscription_user.c.user_id == user_id)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_user_ids(self, db: AsyncSession, *, subscription_id: UUID) -> list[str]:
        """Application users attached to a subscription."""
        result = await db.execute(
            select(subscription_user.c.user_id)
            .where(subscription_user.c.subscription_id == subscription_id)
            .order_by(subscription_user.c.user_id)
        )
        return list(result.scalars().all())

    async def add_user(self, db: AsyncSession, *, subscription_id: UUID, user_id: str) -> bool:
        """Attach a user; returns False if it was already attached."""
        try:
            await db.execute(
                insert(subscription_user).values(subscription_id=subscription_id, user_id=user_id)
            )
            await db.commit()
        except IntegrityError:
            await db.rollback()
            return False
        return True

    async def remove_user(self, db: AsyncSession, *, subscription_id: UUID, user_id: str) -> bool:
        """Detach a user; returns False if it was not attached."""
        result = await db.execute(
            delete(subscription_user).where(
                subscription_user.c.subscription_id == subscription_id,
                subscription_user.c.user_id == user_id,
            )
        )
        await db.commit()
        return result.rowcount > 0


subscription = CRUDSubscription(Subscription, schemas.Subscription)
