from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Depends, FastAPI

from .logging_config import configure_logging
from .platform.security import verify_api_key
from .platform.wiring import get_sync_job_registry
from .routes.activities import router as activities_router
from .routes.sync import router as sync_router
from .settings import get_settings
from .strava_webhook import webhook_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging(get_settings().log_level)
    logger.info("Starting routecache API")
    yield
    await get_sync_job_registry().shutdown()
    logger.info("routecache API shut down")


app: FastAPI = FastAPI(
    title="Route Cache",
    version="1.0.0",
    description="Keeps a local cache of Strava activities and their routes",
    lifespan=lifespan,
)


@app.api_route("/", methods=["GET", "HEAD"], include_in_schema=False)
@app.api_route("/healthz", methods=["GET", "HEAD"], include_in_schema=False)
async def healthz() -> dict[str, str]:
    """Lightweight endpoint used for health checks."""
    return {"status": "ok"}


app.include_router(sync_router, prefix="/v2", dependencies=[Depends(verify_api_key)])
app.include_router(
    activities_router, prefix="/v2", dependencies=[Depends(verify_api_key)]
)

# Strava webhook endpoints (no API key security)
app.include_router(webhook_router)
