from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import ValidationError

from .models import PushAck, PushEvent
from .platform.wiring import provide_cache_synchronizer
from .settings import Settings, get_settings
from .strava.application import CacheSynchronizer, dispatch_push_event

logger = logging.getLogger(__name__)

webhook_router = APIRouter()


@webhook_router.get("/strava-webhook", include_in_schema=False)
async def verify_subscription(
    hub_mode: str = Query(..., alias="hub.mode"),
    hub_challenge: str = Query(..., alias="hub.challenge"),
    hub_verify_token: str = Query(..., alias="hub.verify_token"),
    settings: Settings = Depends(get_settings),
) -> dict[str, str]:
    if hub_verify_token != settings.strava_verify_token or hub_mode != "subscribe":
        raise HTTPException(
            status_code=403, detail={"error": "Invalid verification token"}
        )
    logger.info("Webhook subscription verified")
    return {"hub.challenge": hub_challenge}


@webhook_router.post("/strava-webhook", include_in_schema=False)
async def strava_event(
    request: Request,
    synchronizer: CacheSynchronizer = Depends(provide_cache_synchronizer),
) -> PushAck:
    body = await request.body()

    try:
        event = PushEvent.model_validate(json.loads(body))
    except (json.JSONDecodeError, ValidationError):
        logger.exception("Invalid Strava webhook payload: %s", body.decode("utf-8", "replace"))
        raise HTTPException(status_code=400, detail={"error": "Invalid payload"})

    try:
        outcome = await dispatch_push_event(event, synchronizer)
    except Exception:
        logger.exception("Error processing Strava webhook event: %s", event)
        raise HTTPException(
            status_code=500, detail={"error": "Error processing webhook"}
        )

    return PushAck(status=outcome, object_id=event.object_id, aspect_type=event.aspect_type)
