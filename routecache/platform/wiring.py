"""FastAPI dependency wiring for the Strava cache."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncIterator

import httpx
from fastapi import Depends

from ..models import SyncReport
from ..settings import Settings, get_settings
from ..strava.application import CacheSynchronizer, SyncJobRegistry
from ..strava.domain.rate_limit import RateLimiter
from ..strava.infrastructure import (
    KeyedLocks,
    RedisActivityStore,
    create_activity_store,
    create_strava_client,
    create_token_gate,
)
from .clients import RedisClient, get_redis

HTTP_TIMEOUT = httpx.Timeout(30.0, connect=10.0)


@lru_cache()
def get_rate_limiter() -> RateLimiter:
    """Process-wide limiter; Strava's quota is per application, not per user."""
    return RateLimiter()


@lru_cache()
def get_record_locks() -> KeyedLocks:
    return KeyedLocks()


@lru_cache()
def get_refresh_locks() -> KeyedLocks:
    return KeyedLocks()


def build_synchronizer(
    *,
    http_client: httpx.AsyncClient,
    store: RedisActivityStore,
    settings: Settings,
    rate_limiter: RateLimiter,
) -> CacheSynchronizer:
    tokens = create_token_gate(
        http_client=http_client,
        store=store,
        settings=settings,
        locks=get_refresh_locks(),
    )
    client = create_strava_client(
        http_client=http_client,
        tokens=tokens,
        rate_limiter=rate_limiter,
        settings=settings,
    )
    return CacheSynchronizer(client, store)


@asynccontextmanager
async def open_synchronizer(
    settings: Settings, redis: RedisClient
) -> AsyncIterator[CacheSynchronizer]:
    """Synchronizer with its own HTTP client, usable outside a request."""

    store = create_activity_store(redis=redis, locks=get_record_locks())
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as http_client:
        yield build_synchronizer(
            http_client=http_client,
            store=store,
            settings=settings,
            rate_limiter=get_rate_limiter(),
        )


async def run_user_sync(user_id: int, cancel: asyncio.Event) -> SyncReport:
    settings = get_settings()
    async with open_synchronizer(settings, get_redis(settings)) as synchronizer:
        return await synchronizer.sync_user(user_id, cancel)


@lru_cache()
def get_sync_job_registry() -> SyncJobRegistry:
    return SyncJobRegistry(run_user_sync)


def provide_activity_store(
    redis: RedisClient = Depends(get_redis),
) -> RedisActivityStore:
    return create_activity_store(redis=redis, locks=get_record_locks())


async def provide_cache_synchronizer(
    settings: Settings = Depends(get_settings),
    store: RedisActivityStore = Depends(provide_activity_store),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
) -> AsyncIterator[CacheSynchronizer]:
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as http_client:
        yield build_synchronizer(
            http_client=http_client,
            store=store,
            settings=settings,
            rate_limiter=rate_limiter,
        )


__all__ = [
    "build_synchronizer",
    "get_rate_limiter",
    "get_record_locks",
    "get_refresh_locks",
    "get_sync_job_registry",
    "open_synchronizer",
    "provide_activity_store",
    "provide_cache_synchronizer",
    "run_user_sync",
]
