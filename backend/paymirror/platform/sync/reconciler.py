"""Full-pull reconciliation of the mirror against the provider."""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from paymirror.core.config import Settings
from paymirror.core.exceptions import (
    ConstraintViolation,
    ConversionError,
    EntitySyncError,
    MirrorSyncError,
    RemoteRecordNotFound,
    TransportError,
)
from paymirror.core.logging import LoggerConfigurator
from paymirror.core.shared_models import (
    SYNC_ORDER,
    ConversionFailurePolicy,
    EntityKind,
    UpsertAction,
)
from paymirror.db.session import get_db_context
from paymirror.integrations.provider_client import BillingProviderClient
from paymirror.platform.sync.mirror_writer import MirrorWriter, UpsertResult
from paymirror.schemas.sync import EntitySyncStats, SyncReport

logger = LoggerConfigurator.configure_logger(__name__, dimensions={"component": "reconciler"})


@dataclass(frozen=True)
class ReconcilerConfig:
    """Behaviour switches for reconciliation."""

    conversion_failure_policy: ConversionFailurePolicy = ConversionFailurePolicy.RETAIN

    @classmethod
    def from_settings(cls, settings: Settings) -> "ReconcilerConfig":
        """Build the config from application settings."""
        return cls(conversion_failure_policy=settings.SYNC_CONVERSION_FAILURE_POLICY)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Reconciler:
    """Brings the mirror in line with a complete pull of the provider's data.

    Every entity kind is pulled in dependency order (customers, plans, prices,
    subscriptions) so linked rows exist before the rows that point at them.
    Each record is identified, converted and upserted through the shared
    ``MirrorWriter``. Once all pulls are done, rows the provider no longer
    returned are deleted, dependents first, but only for kinds whose pull ran to
    the end: a pull cut short by a transport error proves nothing about what is
    missing.

    Full syncs are serialized through ``lock``, which the periodic scheduler and
    the manual trigger share.
    """

    def __init__(
        self,
        provider: BillingProviderClient,
        writer: MirrorWriter,
        session_factory: async_sessionmaker[AsyncSession],
        config: Optional[ReconcilerConfig] = None,
    ):
        """Initialize the reconciler.

        Args:
        ----
            provider (BillingProviderClient): Source of remote records.
            writer (MirrorWriter): The shared write path.
            session_factory (async_sessionmaker[AsyncSession]): Opens one session per pass.
            config (Optional[ReconcilerConfig]): Behaviour switches.

        """
        self.provider = provider
        self.writer = writer
        self.session_factory = session_factory
        self.config = config or ReconcilerConfig()
        self.lock = asyncio.Lock()

    async def sync(self) -> SyncReport:
        """Pull every entity kind, then remove orphans.

        Returns:
        -------
            SyncReport: Per-kind statistics.

        Raises:
        ------
            MirrorSyncError: If any kind failed. Every other kind was still
                attempted and its changes stay committed.

        """
        async with self.lock:
            report = SyncReport(started_at=_now())
            failures: list[EntitySyncError] = []
            seen: dict[EntityKind, set[str]] = {}

            logger.info("Starting full sync")
            async with get_db_context(self.session_factory) as db:
                for kind in SYNC_ORDER:
                    stats = EntitySyncStats(kind=kind)
                    report.entities[kind] = stats
                    try:
                        seen[kind] = await self._pull(db, kind, stats)
                    except EntitySyncError as e:
                        failures.append(e)

                for kind in reversed(SYNC_ORDER):
                    if kind in seen:
                        await self._remove_orphans(db, kind, seen[kind], report.entities[kind])

            report.finished_at = _now()
            self._log_report(report)

            if failures:
                raise MirrorSyncError(failures, report)
            return report

    async def sync_kind(self, kind: EntityKind) -> EntitySyncStats:
        """Pull a single entity kind and remove its orphans.

        Raises:
        ------
            EntitySyncError: If the pull failed; no orphans were removed.

        """
        async with self.lock:
            stats = EntitySyncStats(kind=kind)
            async with get_db_context(self.session_factory) as db:
                seen_ids = await self._pull(db, kind, stats)
                await self._remove_orphans(db, kind, seen_ids, stats)
            return stats

    async def refresh(self, kind: EntityKind, external_id: str) -> Optional[UpsertResult]:
        """Re-read one record from the provider and apply it.

        A record the provider no longer has is removed from the mirror.

        Returns:
        -------
            Optional[UpsertResult]: The upsert outcome, or None if the record was removed.

        Raises:
        ------
            TransportError: If the provider cannot be reached.
            ConversionError: If the record cannot be converted or linked.

        """
        async with get_db_context(self.session_factory) as db:
            try:
                record = await self.provider.retrieve(kind, external_id)
            except RemoteRecordNotFound:
                await self.writer.remove(
                    db, kind, provider=self.provider.name, provider_id=external_id
                )
                return None
            converted = self.provider.convert(kind, record)
            return await self.writer.upsert(db, kind, converted)

    async def _pull(self, db: AsyncSession, kind: EntityKind, stats: EntitySyncStats) -> set[str]:
        """Upsert every remote record of ``kind`` and return the external ids seen.

        Ids are collected before conversion, so an unconvertible record still
        counts as present and is never treated as an orphan.
        """
        kind_logger = logger.with_context(entity_kind=kind.value, provider=self.provider.name)
        seen_ids: set[str] = set()
        conversion_failed = False

        try:
            async for record in self.provider.list_records(kind):
                stats.seen += 1
                try:
                    external_id = self.provider.identify(kind, record)
                except ConversionError as e:
                    kind_logger.warning(f"Skipping record without identity: {e}")
                    stats.skipped += 1
                    conversion_failed = True
                    continue
                seen_ids.add(external_id)

                try:
                    converted = self.provider.convert(kind, record)
                    result = await self.writer.upsert(db, kind, converted)
                except ConversionError as e:
                    kind_logger.warning(f"Skipping {external_id}: {e}")
                    stats.skipped += 1
                    conversion_failed = True
                    continue
                except ConstraintViolation as e:
                    kind_logger.error(f"Skipping {external_id}: {e}")
                    stats.skipped += 1
                    continue

                if result.action == UpsertAction.ADDED:
                    stats.inserted += 1
                elif result.action == UpsertAction.UPDATED:
                    stats.updated += 1
                else:
                    stats.unchanged += 1
        except TransportError as e:
            stats.error = str(e)
            kind_logger.error(f"Pull aborted after {stats.seen} records: {e}")
            raise EntitySyncError(kind, e) from e

        stats.completed = True
        if (
            conversion_failed
            and self.config.conversion_failure_policy
            == ConversionFailurePolicy.SUPPRESS_ORPHAN_REMOVAL
        ):
            stats.orphan_removal_skipped = True
        return seen_ids

    async def _remove_orphans(
        self, db: AsyncSession, kind: EntityKind, seen_ids: set[str], stats: EntitySyncStats
    ) -> None:
        if stats.orphan_removal_skipped:
            logger.with_context(entity_kind=kind.value).warning(
                "Orphan removal skipped after conversion failures"
            )
            return
        removed = await self.writer.remove_orphans(
            db, kind, provider=self.provider.name, seen_ids=seen_ids
        )
        stats.deleted += len(removed)

    def _log_report(self, report: SyncReport) -> None:
        for kind, stats in report.entities.items():
            logger.with_context(entity_kind=kind.value).info(
                f"{kind.value}: seen={stats.seen} inserted={stats.inserted} "
                f"updated={stats.updated} unchanged={stats.unchanged} "
                f"deleted={stats.deleted} skipped={stats.skipped} completed={stats.completed}"
            )
