"""CRUD operations for customers."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paymirror import schemas
from paymirror.crud._base import CRUDMirror
from paymirror.models import Customer


class CRUDCustomer(CRUDMirror[Customer, schemas.Customer]):
    """CRUD operations for customers."""

    async def get_by_email(self, db: AsyncSession, *, email: str) -> list[Customer]:
        """Customers with the given email, across providers."""
        result = await db.execute(select(Customer).where(Customer.email == email))
        return list(result.scalars().all())

    async def get_by_user(self, db: AsyncSession, *, user_id: str) -> Optional[Customer]:
        """The customer linked to an application user, if any."""
        result = await db.execute(select(Customer).where(Customer.user_id == user_id).limit(1))
        return result.scalar_one_or_none()

    async def link_user(
        self, db: AsyncSession, *, db_obj: Customer, user_id: Optional[str]
    ) -> Customer:
        """Associate (or, with ``None``, dissociate) an application user.

        The link is local-only; syncs and webhooks never overwrite it.
        """
        db_obj.user_id = user_id
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj


customer = CRUDCustomer(Customer, schemas.Customer)
