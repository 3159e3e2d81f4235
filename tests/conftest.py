"""Shared test fixtures and doubles."""

from __future__ import annotations

import asyncio
import sys
from collections.abc import AsyncIterator, Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from upstash_redis.errors import UpstashError

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from routecache import main
from routecache.models import Credential, SyncReport, UpsertOutcome
from routecache.platform.clients import RedisClient, get_redis
from routecache.platform.wiring import get_sync_job_registry, provide_cache_synchronizer
from routecache.settings import Settings, get_settings
from routecache.strava.application import SyncJobRegistry
from routecache.strava.infrastructure import RedisActivityStore

from tests.fakes import FakeActivitySource


class RedisFake(RedisClient):
    """In-memory Redis double that records writes."""

    def __init__(self) -> None:
        self.store: Dict[str, str] = {}
        self.sets: Dict[str, Set[str]] = {}
        self.expirations: Dict[str, Optional[int]] = {}
        self.writes: List[tuple[str, str]] = []
        self._failure: Exception | None = None

    def fail_with(self, error: Exception | None = None) -> "RedisFake":
        """Make every subsequent call raise ``error``."""

        self._failure = error or UpstashError("redis unavailable")
        return self

    def _maybe_fail(self) -> None:
        if self._failure is not None:
            raise self._failure

    def get(self, key: str) -> Optional[str]:
        self._maybe_fail()
        return self.store.get(key)

    def set(self, key: str, value: str, ex: Optional[int] = None) -> None:
        self._maybe_fail()
        self.writes.append(("set", key))
        self.store[key] = value
        self.expirations[key] = ex

    def exists(self, *keys: str) -> int:
        self._maybe_fail()
        return sum(1 for key in keys if key in self.store)

    def sadd(self, key: str, *members: str) -> int:
        self._maybe_fail()
        self.writes.append(("sadd", key))
        current = self.sets.setdefault(key, set())
        added = [member for member in members if member not in current]
        current.update(members)
        return len(added)

    def smembers(self, key: str) -> List[str]:
        self._maybe_fail()
        return list(self.sets.get(key, set()))

    def srem(self, key: str, *members: str) -> int:
        self._maybe_fail()
        self.writes.append(("srem", key))
        current = self.sets.get(key, set())
        removed = [member for member in members if member in current]
        current.difference_update(members)
        return len(removed)

    def mget(self, *keys: str) -> List[Optional[str]]:
        self._maybe_fail()
        return [self.store.get(key) for key in keys]

    def activity_writes(self) -> int:
        return sum(1 for op, key in self.writes if op == "set" and ":activity:" in key)


@dataclass
class _Expectation:
    expected: Dict[str, Any]
    returns: Any = None
    raises: Exception | None = None


class SynchronizerSpy:
    """Spy double for ``CacheSynchronizer`` interactions."""

    def __init__(self) -> None:
        self._expected_apply: list[_Expectation] = []
        self.applied: list[tuple[int, int]] = []

    def expect_apply_pushed_activity(
        self,
        activity_id: int | None = None,
        owner_id: int | None = None,
        *,
        returns: UpsertOutcome = UpsertOutcome.CREATED,
        raises: Exception | None = None,
    ) -> "SynchronizerSpy":
        self._expected_apply.append(
            _Expectation(
                {"activity_id": activity_id, "owner_id": owner_id}, returns, raises
            )
        )
        return self

    def assert_last_apply(self, activity_id: int, owner_id: int | None = None) -> None:
        assert self.applied, "apply_pushed_activity() was not invoked"
        last_activity, last_owner = self.applied[-1]
        assert last_activity == activity_id, (
            f"Expected last applied {activity_id}, saw {last_activity}"
        )
        if owner_id is not None:
            assert last_owner == owner_id, f"Expected owner {owner_id}, saw {last_owner}"

    async def apply_pushed_activity(self, activity_id: int, owner_id: int) -> UpsertOutcome:
        self.applied.append((activity_id, owner_id))
        if self._expected_apply:
            expectation = self._expected_apply.pop(0)
            for key, value in (("activity_id", activity_id), ("owner_id", owner_id)):
                expected = expectation.expected.get(key)
                if expected is not None and expected != value:
                    raise AssertionError(f"Expected {key}={expected} but got {value}")
            if expectation.raises:
                raise expectation.raises
            return expectation.returns
        return UpsertOutcome.CREATED


class RunnerStub:
    """Controllable stand-in for the background sync runner."""

    def __init__(self) -> None:
        self.calls: list[int] = []
        self.release = asyncio.Event()
        self.raises: Exception | None = None
        self.block = False

    async def __call__(self, user_id: int, cancel: asyncio.Event) -> SyncReport:
        self.calls.append(user_id)
        if self.block:
            await self.release.wait()
        if self.raises is not None:
            raise self.raises
        return SyncReport(user_id=user_id, created=1)


@pytest.fixture
def settings() -> Settings:
    """Canonical settings instance reused across tests."""

    return Settings(
        api_key="test-key",
        strava_client_id="strava-client",
        strava_client_secret="strava-secret",
        strava_verify_token="verify-token",
        upstash_redis_rest_url="https://redis.example.com",
        upstash_redis_rest_token="redis-token",
        strava_webhook_url="https://cache.example.com/strava-webhook",
        strava_api_base_url="https://strava.test/api/v3",
        strava_token_url="https://strava.test/api/v3/oauth/token",
        strava_max_attempts=3,
    )


@pytest.fixture
def redis_fake() -> RedisFake:
    return RedisFake()


@pytest.fixture
def store(redis_fake: RedisFake) -> RedisActivityStore:
    return RedisActivityStore(redis_fake)


@pytest.fixture
def credential() -> Credential:
    return Credential(
        user_id=7,
        access_token="access-7",
        refresh_token="refresh-7",
        expires_at=int(datetime(2030, 1, 1, tzinfo=timezone.utc).timestamp()),
    )


@pytest.fixture
def activity_source() -> FakeActivitySource:
    return FakeActivitySource()


@pytest.fixture
def synchronizer_spy() -> SynchronizerSpy:
    return SynchronizerSpy()


@pytest.fixture
def runner_stub() -> RunnerStub:
    return RunnerStub()


@pytest.fixture
def job_registry(runner_stub: RunnerStub) -> SyncJobRegistry:
    return SyncJobRegistry(runner_stub)


@pytest.fixture
def app(
    settings: Settings,
    redis_fake: RedisFake,
    synchronizer_spy: SynchronizerSpy,
    job_registry: SyncJobRegistry,
) -> Iterator[FastAPI]:
    """Configured FastAPI application instance for integration tests."""

    app = main.app
    overrides = {
        get_settings: lambda: settings,
        get_redis: lambda: redis_fake,
        provide_cache_synchronizer: lambda: synchronizer_spy,
        get_sync_job_registry: lambda: job_registry,
    }
    app.dependency_overrides.update(overrides)
    try:
        yield app
    finally:
        for dependency in overrides:
            app.dependency_overrides.pop(dependency, None)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    """Async HTTP client bound to the FastAPI app."""

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as api_client:
        yield api_client


class FrozenClock:
    """Mutable UTC clock injected into time-aware components."""

    def __init__(self, current: datetime) -> None:
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        self._current = current

    def __call__(self) -> datetime:
        return self._current

    @property
    def current(self) -> datetime:
        return self._current

    def set(self, new_value: datetime) -> None:
        if new_value.tzinfo is None:
            new_value = new_value.replace(tzinfo=timezone.utc)
        self._current = new_value

    def advance(self, **delta: Any) -> None:
        self._current += timedelta(**delta)

    def timestamp(self) -> float:
        return self._current.timestamp()


class SleepRecorder:
    """Async ``sleep`` replacement that advances a ``FrozenClock``."""

    def __init__(self, clock: FrozenClock) -> None:
        self._clock = clock
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        self._clock.advance(seconds=seconds)


@pytest.fixture
def frozen_clock() -> FrozenClock:
    return FrozenClock(datetime(2024, 1, 1, 12, 7, 30, tzinfo=timezone.utc))


@pytest.fixture
def sleep_recorder(frozen_clock: FrozenClock) -> SleepRecorder:
    return SleepRecorder(frozen_clock)
