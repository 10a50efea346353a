"""Schemas describing the outcome of a reconciliation pass."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from paymirror.core.shared_models import EntityKind


class EntitySyncStats(BaseModel):
    """Counters for one entity kind during a sync."""

    kind: EntityKind
    seen: int = 0
    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    deleted: int = 0
    skipped: int = 0
    completed: bool = False
    orphan_removal_skipped: bool = False
    error: Optional[str] = None


class SyncReport(BaseModel):
    """Statistics for every entity kind attempted by a sync."""

    started_at: datetime
    finished_at: Optional[datetime] = None
    entities: dict[EntityKind, EntitySyncStats] = Field(default_factory=dict)

    @property
    def failed_kinds(self) -> list[EntityKind]:
        """Kinds whose enumeration did not complete."""
        return [kind for kind, stats in self.entities.items() if not stats.completed]
