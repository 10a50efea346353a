"""CRUD operations for prices."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paymirror import schemas
from paymirror.crud._base import CRUDMirror
from paymirror.models import Price


class CRUDPrice(CRUDMirror[Price, schemas.Price]):
    """CRUD operations for prices."""

    async def get_by_plan(self, db: AsyncSession, *, plan_id: UUID) -> list[Price]:
        """All prices of a plan, cheapest first."""
        result = await db.execute(
            select(Price).where(Price.plan_id == plan_id).order_by(Price.amount, Price.provider_id)
        )
        return list(result.scalars().all())


price = CRUDPrice(Price, schemas.Price)
