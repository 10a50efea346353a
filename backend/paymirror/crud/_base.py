"""Base class for mirror table CRUD operations."""

from typing import Any, Generic, Optional, Type, TypeVar
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from paymirror.core.exceptions import ConstraintViolation
from paymirror.core.logging import logger
from paymirror.models._base import MirrorBase

ModelType = TypeVar("ModelType", bound=MirrorBase)
SnapshotType = TypeVar("SnapshotType", bound=BaseModel)


class CRUDMirror(Generic[ModelType, SnapshotType]):
    """Create, read, update and delete for tables that mirror a provider entity.

    Every write commits on its own. Storage constraint failures are rolled back
    and surfaced as ``ConstraintViolation``; lookups that miss return ``None``.
    Deletes return snapshots taken before the row went away, so observers can be
    told what was removed. Lookups refresh rows the session already holds.
    """

    def __init__(self, model: Type[ModelType], snapshot: Type[SnapshotType]):
        """Initialize the CRUD object.

        Args:
        ----
            model (Type[ModelType]): The model to be used in the CRUD operations.
            snapshot (Type[SnapshotType]): The schema rows are snapshotted into.

        """
        self.model = model
        self.snapshot = snapshot

    def to_snapshot(self, db_obj: ModelType) -> SnapshotType:
        """Immutable copy of a row's current values."""
        return self.snapshot.model_validate(db_obj)

    async def get(self, db: AsyncSession, id: UUID) -> Optional[ModelType]:
        """Get a single row by internal id.

        Args:
        ----
            db (AsyncSession): The database session.
            id (UUID): The internal id of the row.

        Returns:
        -------
            Optional[ModelType]: The row, or None.

        """
        query = select(self.model).where(self.model.id == id)
        result = await db.execute(query.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def get_by_external(
        self, db: AsyncSession, *, provider: str, provider_id: str
    ) -> Optional[ModelType]:
        """Get a single row by its external identity."""
        query = select(self.model).where(
            self.model.provider == provider, self.model.provider_id == provider_id
        )
        result = await db.execute(query.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def get_multi(
        self,
        db: AsyncSession,
        *,
        provider: Optional[str] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> list[ModelType]:
        """List rows, optionally restricted to one provider, oldest first."""
        query = select(self.model)
        if provider is not None:
            query = query.where(self.model.provider == provider)
        query = query.order_by(self.model.created_at, self.model.provider_id).offset(skip)
        if limit is not None:
            query = query.limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def create(self, db: AsyncSession, *, obj_in: dict[str, Any]) -> ModelType:
        """Insert a new row.

        Args:
        ----
            db (AsyncSession): The database session.
            obj_in (dict[str, Any]): Column values, including ``provider`` and ``provider_id``.

        Returns:
        -------
            ModelType: The created row.

        Raises:
        ------
            ConstraintViolation: If the external identity already exists or a
                foreign key does not resolve.

        """
        db_obj = self.model(**obj_in)
        db.add(db_obj)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            raise ConstraintViolation(
                self.model.__tablename__, obj_in["provider"], obj_in["provider_id"]
            ) from e
        await db.refresh(db_obj)
        return db_obj

    async def update(
        self, db: AsyncSession, *, db_obj: ModelType, obj_in: dict[str, Any]
    ) -> ModelType:
        """Overwrite the given columns of an existing row.

        The internal id and the external identity are immutable and skipped if present.
        """
        provider, provider_id = db_obj.provider, db_obj.provider_id
        for key, value in obj_in.items():
            if key in ("id", "provider", "provider_id"):
                continue
            setattr(db_obj, key, value)
        db.add(db_obj)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            raise ConstraintViolation(self.model.__tablename__, provider, provider_id) from e
        await db.refresh(db_obj)
        return db_obj

    async def remove_by_external(
        self, db: AsyncSession, *, provider: str, provider_id: str
    ) -> Optional[SnapshotType]:
        """Delete the row with the given external identity.

        Returns:
        -------
            Optional[SnapshotType]: The deleted row's last values, or None if there was no row.

        Raises:
        ------
            ConstraintViolation: If other rows still reference this one.

        """
        db_obj = await self.get_by_external(db, provider=provider, provider_id=provider_id)
        if db_obj is None:
            return None
        snapshot = self.to_snapshot(db_obj)
        if not await self._delete(db, snapshot):
            return None
        return snapshot

    async def remove_orphans(
        self, db: AsyncSession, *, provider: str, seen_ids: set[str]
    ) -> list[SnapshotType]:
        """Delete every row of ``provider`` whose external id is not in ``seen_ids``.

        Only call this after a complete enumeration of the remote collection.
        Each row is deleted in its own transaction; a row that is still
        referenced by a dependent is kept and picked up again by a later pass.

        Returns:
        -------
            list[SnapshotType]: Snapshots of the rows actually deleted.

        """
        result = await db.execute(select(self.model).where(self.model.provider == provider))
        candidates = [
            self.to_snapshot(row) for row in result.scalars().all() if row.provider_id not in seen_ids
        ]

        removed = []
        for snapshot in candidates:
            try:
                deleted = await self._delete(db, snapshot)
            except ConstraintViolation as e:
                logger.with_context(table=self.model.__tablename__, provider=provider).warning(
                    f"Keeping orphaned {snapshot.provider_id}, still referenced: {e}"
                )
                continue
            if deleted:
                removed.append(snapshot)
        return removed

    async def _delete(self, db: AsyncSession, snapshot: SnapshotType) -> bool:
        try:
            result = await db.execute(delete(self.model).where(self.model.id == snapshot.id))
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            raise ConstraintViolation(
                self.model.__tablename__, snapshot.provider, snapshot.provider_id
            ) from e
        return result.rowcount > 0
