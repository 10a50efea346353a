"""CRUD operations for plans."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paymirror import schemas
from paymirror.crud._base import CRUDMirror
from paymirror.models import Plan


class CRUDPlan(CRUDMirror[Plan, schemas.Plan]):
    """CRUD operations for plans."""

    async def get_active(self, db: AsyncSession) -> list[Plan]:
        """Plans currently offered for purchase."""
        result = await db.execute(
            select(Plan).where(Plan.active.is_(True)).order_by(Plan.name, Plan.provider_id)
        )
        return list(result.scalars().all())


plan = CRUDPlan(Plan, schemas.Plan)
