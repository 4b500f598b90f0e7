"""Migration run endpoints: start, status, cancel."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_orchestrator, get_progress_store
from ..models import (
    CancelResponse,
    MigrationCancelRequest,
    MigrationStartRequest,
    MigrationStatusResponse,
)
from ...models.migration import STARTABLE_STATUSES, MigrationProgress, MigrationStatus
from ...orchestrator import MigrationOrchestrator, MigrationStateError
from ...services.progress import MigrationLockedError, ProgressStore

logger = logging.getLogger(__name__)

router = APIRouter()


def _status_response(migration) -> MigrationStatusResponse:
    return MigrationStatusResponse(migration=MigrationProgress.from_migration(migration).to_dict())


@router.post("/start", response_model=MigrationStatusResponse)
def start_migration(
    request: MigrationStartRequest,
    progress: ProgressStore = Depends(get_progress_store),
    orchestrator: MigrationOrchestrator = Depends(get_orchestrator)
):
    """
    Run a migration until it completes, pauses or fails.

    The request blocks for at most one run budget. A paused migration is
    resumed by calling start again.
    """
    migration = progress.get(request.migration_id)
    if not migration:
        raise HTTPException(status_code=404, detail="Migration not found")

    if migration.status not in STARTABLE_STATUSES:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot start migration in status: {migration.status.value}"
        )

    try:
        result = orchestrator.run(request.to_config())
    except MigrationLockedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except MigrationStateError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return _status_response(result)


@router.get("/status", response_model=MigrationStatusResponse)
def migration_status(
    migration_id: Optional[str] = None,
    store_id: Optional[str] = None,
    progress: ProgressStore = Depends(get_progress_store)
):
    """Progress of a migration, or of the store's latest one."""
    if migration_id:
        migration = progress.get(migration_id)
    elif store_id:
        migration = progress.get_latest_for_store(store_id)
    else:
        raise HTTPException(status_code=400, detail="migration_id or store_id is required")

    if migration is None:
        return MigrationStatusResponse(migration=None)
    return _status_response(migration)


@router.post("/cancel", response_model=CancelResponse)
def cancel_migration(
    request: MigrationCancelRequest,
    progress: ProgressStore = Depends(get_progress_store)
):
    """Request cancellation. A running migration stops at its next page boundary."""
    migration = progress.get(request.migration_id)
    if not migration:
        raise HTTPException(status_code=404, detail="Migration not found")

    if migration.status in (MigrationStatus.COMPLETED, MigrationStatus.CANCELLED):
        raise HTTPException(
            status_code=400,
            detail=f"Cannot cancel migration in status: {migration.status.value}"
        )

    updated = progress.set_status(migration.id, MigrationStatus.CANCELLED)
    logger.info(f"Cancellation requested for migration {migration.id}")
    return CancelResponse(migration_id=updated.id, status=updated.status.value)
