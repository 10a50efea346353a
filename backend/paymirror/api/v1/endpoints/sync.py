"""Manual reconciliation endpoints."""

from typing import Any, Optional

from fastapi import APIRouter, Depends

from paymirror.api.deps import get_mirror
from paymirror.core.mirror_service import BillingMirror
from paymirror.core.shared_models import EntityKind
from paymirror.schemas.sync import EntitySyncStats, SyncReport

router = APIRouter()


@router.post("/sync", response_model=SyncReport)
async def sync_mirror(mirror: BillingMirror = Depends(get_mirror)) -> SyncReport:
    """Run a full sync now.

    Waits for a sync that is already running to finish first. Responds 502 with
    the partial report when any entity kind could not be pulled.
    """
    return await mirror.reconciler.sync()


@router.post("/sync/{kind}", response_model=EntitySyncStats)
async def sync_entity_kind(
    kind: EntityKind, mirror: BillingMirror = Depends(get_mirror)
) -> EntitySyncStats:
    """Pull a single entity kind and remove its orphans."""
    return await mirror.reconciler.sync_kind(kind)


@router.post("/refresh/{kind}/{external_id}")
async def refresh_record(
    kind: EntityKind, external_id: str, mirror: BillingMirror = Depends(get_mirror)
) -> dict[str, Optional[Any]]:
    """Re-read one record from the provider and apply it to the mirror."""
    result = await mirror.reconciler.refresh(kind, external_id)
    if result is None:
        return {"action": "removed", "record": None}
    return {"action": result.action.value, "record": result.snapshot.model_dump(mode="json")}
