"""The single write path into the mirror, shared by sync and webhooks."""

from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from paymirror.core.events import EventBus
from paymirror.core.exceptions import ConstraintViolation
from paymirror.core.logging import LoggerConfigurator
from paymirror.core.shared_models import EntityKind, UpsertAction
from paymirror.integrations.provider_client import ConvertedRecord
from paymirror.platform.sync.adapters import ADAPTERS, IDENTITY_FIELDS

logger = LoggerConfigurator.configure_logger(__name__, dimensions={"component": "mirror_writer"})


@dataclass(frozen=True)
class UpsertResult:
    """What an upsert did and the row it left behind."""

    action: UpsertAction
    snapshot: BaseModel


def changed_fields(db_obj: Any, values: dict[str, Any]) -> dict[str, Any]:
    """Business fields of ``values`` that differ from the stored row."""
    return {
        key: value
        for key, value in values.items()
        if key not in IDENTITY_FIELDS and getattr(db_obj, key) != value
    }


class MirrorWriter:
    """Applies converted records to the mirror and publishes the resulting transitions.

    Notifications are only published after the change is committed, and only
    for changes that actually happened: an upsert that finds identical business
    fields neither writes nor notifies.
    """

    def __init__(self, bus: EventBus):
        """Initialize the writer.

        Args:
        ----
            bus (EventBus): Where transitions are published.

        """
        self.bus = bus

    async def upsert(
        self, db: AsyncSession, kind: EntityKind, record: ConvertedRecord
    ) -> UpsertResult:
        """Insert the record, update the stored row, or do nothing if nothing changed.

        Args:
        ----
            db (AsyncSession): The database session.
            kind (EntityKind): The kind of ``record``.
            record (ConvertedRecord): Output of the provider's ``convert``.

        Returns:
        -------
            UpsertResult: The action taken and the resulting snapshot.

        Raises:
        ------
            UnresolvedReferenceError: If a linked row is not in the mirror yet.
            ConstraintViolation: If storage refused the write for another reason.

        """
        adapter = ADAPTERS[kind]
        values = await adapter.resolve(db, record)

        db_obj = await adapter.crud.get_by_external(
            db, provider=record.provider, provider_id=record.provider_id
        )
        if db_obj is None:
            try:
                db_obj = await adapter.crud.create(db, obj_in=values)
            except ConstraintViolation:
                # Inserted concurrently by the other write path
                db_obj = await adapter.crud.get_by_external(
                    db, provider=record.provider, provider_id=record.provider_id
                )
                if db_obj is None:
                    raise
            else:
                snapshot = adapter.crud.to_snapshot(db_obj)
                await self.bus.publish_added(kind, snapshot)
                return UpsertResult(UpsertAction.ADDED, snapshot)

        changes = changed_fields(db_obj, values)
        if not changes:
            return UpsertResult(UpsertAction.UNCHANGED, adapter.crud.to_snapshot(db_obj))

        previous = adapter.crud.to_snapshot(db_obj)
        db_obj = await adapter.crud.update(db, db_obj=db_obj, obj_in=changes)
        current = adapter.crud.to_snapshot(db_obj)
        logger.with_context(entity_kind=kind.value, provider_id=record.provider_id).debug(
            f"Updated fields: {', '.join(sorted(changes))}"
        )
        await self.bus.publish_updated(kind, previous, current)
        return UpsertResult(UpsertAction.UPDATED, current)

    async def remove(
        self, db: AsyncSession, kind: EntityKind, *, provider: str, provider_id: str
    ) -> Optional[BaseModel]:
        """Delete one row by external identity; a missing row is not an error.

        Returns:
        -------
            Optional[BaseModel]: The deleted row's last snapshot, or None.

        """
        snapshot = await ADAPTERS[kind].crud.remove_by_external(
            db, provider=provider, provider_id=provider_id
        )
        if snapshot is not None:
            await self.bus.publish_removed(kind, snapshot)
        return snapshot

    async def remove_orphans(
        self, db: AsyncSession, kind: EntityKind, *, provider: str, seen_ids: set[str]
    ) -> list[BaseModel]:
        """Delete rows of ``kind`` the provider no longer has.

        Must only follow a complete enumeration of the remote collection.
        """
        removed = await ADAPTERS[kind].crud.remove_orphans(
            db, provider=provider, seen_ids=seen_ids
        )
        for snapshot in removed:
            await self.bus.publish_removed(kind, snapshot)
        return removed
