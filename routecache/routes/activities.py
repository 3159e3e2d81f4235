from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, Query

from ..models import ActivityRecord
from ..platform.wiring import provide_activity_store
from ..strava.application import PersistenceError
from ..strava.infrastructure import RedisActivityStore

logger = logging.getLogger(__name__)

router: APIRouter = APIRouter()


@router.get("/users", response_model=List[int])
async def list_users(
    store: RedisActivityStore = Depends(provide_activity_store),
) -> List[int]:
    """Ids of every athlete with a stored credential."""
    try:
        return await store.list_user_ids()
    except PersistenceError as exc:
        logger.error("Listing users failed: %s", exc)
        raise HTTPException(status_code=503, detail={"error": "Cache unavailable"}) from exc


@router.get("/users/{user_id}/activities", response_model=List[ActivityRecord])
async def list_user_activities(
    user_id: int = Path(..., description="Strava athlete id."),
    include_route: bool = Query(
        True, description="Return the encoded polyline and WKT line of each activity."
    ),
    store: RedisActivityStore = Depends(provide_activity_store),
) -> List[ActivityRecord]:
    """Cached activities of one athlete, most recent first."""
    try:
        records = await store.list_records(user_id)
    except PersistenceError as exc:
        logger.error("Listing activities for user %s failed: %s", user_id, exc)
        raise HTTPException(status_code=503, detail={"error": "Cache unavailable"}) from exc
    if not include_route:
        records = [record.model_copy(update={"route": "", "geom": ""}) for record in records]
    return records
