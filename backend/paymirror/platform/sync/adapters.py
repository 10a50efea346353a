"""Per-kind persistence adapters used by the mirror writer.

Each adapter pairs an entity kind with its CRUD object and a ``resolve`` step
that turns a converted record into column values, replacing linked external
ids with the internal ids of rows already in the mirror.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from paymirror import crud, schemas
from paymirror.core.exceptions import UnresolvedReferenceError
from paymirror.core.shared_models import EntityKind
from paymirror.crud._base import CRUDMirror

ResolveFn = Callable[[AsyncSession, Any], Awaitable[dict[str, Any]]]

# Columns that identify a row rather than describe it
IDENTITY_FIELDS = frozenset({"provider", "provider_id"})


@dataclass(frozen=True)
class EntityAdapter:
    """How one entity kind is stored."""

    kind: EntityKind
    crud: CRUDMirror
    resolve: ResolveFn


async def _resolve_plain(db: AsyncSession, record: Any) -> dict[str, Any]:
    return record.model_dump()


async def _lookup_id(
    db: AsyncSession, target: CRUDMirror, provider: str, provider_id: str, *, owner: str
) -> UUID:
    row = await target.get_by_external(db, provider=provider, provider_id=provider_id)
    if row is None:
        raise UnresolvedReferenceError(
            owner, f"{target.model.__tablename__} {provider_id} is not in the mirror"
        )
    return row.id


async def _resolve_price(db: AsyncSession, record: schemas.PriceRecord) -> dict[str, Any]:
    plan_id = await _lookup_id(
        db, crud.plan, record.provider, record.plan_provider_id, owner=record.provider_id
    )
    return {
        "provider": record.provider,
        "provider_id": record.provider_id,
        "plan_id": plan_id,
        "amount": record.amount,
        "currency": record.currency,
        "schedule": record.schedule.value,
        "trial_days": record.trial_days,
    }


async def _resolve_subscription(
    db: AsyncSession, record: schemas.SubscriptionRecord
) -> dict[str, Any]:
    customer_id = await _lookup_id(
        db,
        crud.customer,
        record.provider,
        record.customer_provider_id,
        owner=record.provider_id,
    )
    price_id = await _lookup_id(
        db, crud.price, record.provider, record.price_provider_id, owner=record.provider_id
    )
    return {
        "provider": record.provider,
        "provider_id": record.provider_id,
        "customer_id": customer_id,
        "price_id": price_id,
        "active": record.active,
        "status": record.status,
        "started_at": record.started_at,
    }


ADAPTERS: dict[EntityKind, EntityAdapter] = {
    EntityKind.CUSTOMER: EntityAdapter(EntityKind.CUSTOMER, crud.customer, _resolve_plain),
    EntityKind.PLAN: EntityAdapter(EntityKind.PLAN, crud.plan, _resolve_plain),
    EntityKind.PRICE: EntityAdapter(EntityKind.PRICE, crud.price, _resolve_price),
    EntityKind.SUBSCRIPTION: EntityAdapter(
        EntityKind.SUBSCRIPTION, crud.subscription, _resolve_subscription
    ),
}
