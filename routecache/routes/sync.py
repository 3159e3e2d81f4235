from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Path

from ..models import SyncJob
from ..platform.wiring import get_sync_job_registry
from ..strava.application import SyncJobRegistry

router: APIRouter = APIRouter()


@router.post("/sync/{user_id}", status_code=202, response_model=SyncJob)
async def start_sync(
    user_id: int = Path(..., description="Strava athlete id to reconcile."),
    registry: SyncJobRegistry = Depends(get_sync_job_registry),
) -> SyncJob:
    """Start a background full reconciliation for one athlete."""
    return registry.start(user_id)


@router.get("/sync/jobs/{job_id}", response_model=SyncJob)
async def get_sync_job(
    job_id: str,
    registry: SyncJobRegistry = Depends(get_sync_job_registry),
) -> SyncJob:
    job = registry.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail={"error": "Unknown sync job"})
    return job


@router.delete("/sync/jobs/{job_id}", response_model=SyncJob)
async def cancel_sync_job(
    job_id: str,
    registry: SyncJobRegistry = Depends(get_sync_job_registry),
) -> SyncJob:
    """Request cancellation; the job stops before its next activity."""
    job = registry.cancel(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail={"error": "Unknown sync job"})
    return job
