"""Mirror of Strava's server-reported read quotas.

Strava enforces two read windows: a short one that resets on every quarter
hour and a daily one that resets at midnight UTC. Usage is never counted
locally; every response carries the authoritative counters in its headers and
``report`` simply overwrites the mirrored state.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Awaitable, Callable, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_SHORT_CEILING = 300
DEFAULT_LONG_CEILING = 3000
SHORT_WINDOW_MINUTES = 15
RESET_MARGIN = timedelta(seconds=1)

LIMIT_HEADERS = ("X-ReadRateLimit-Limit", "X-RateLimit-Limit")
USAGE_HEADERS = ("X-ReadRateLimit-Usage", "X-RateLimit-Usage")

Clock = Callable[[], datetime]
Sleep = Callable[[float], Awaitable[None]]


class RateLimitKind(str, Enum):
    NONE = "none"
    SHORT = "short"
    LONG = "long"


@dataclass(frozen=True)
class RateWindow:
    ceiling: int
    usage: int
    reset_at: Optional[datetime] = None

    @property
    def exhausted(self) -> bool:
        return self.usage >= self.ceiling


@dataclass(frozen=True)
class RateLimitSnapshot:
    short: RateWindow
    long: RateWindow


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def next_short_reset(observed_at: datetime) -> datetime:
    """Return the next quarter-hour boundary strictly after ``observed_at``."""

    boundary = (observed_at.minute // SHORT_WINDOW_MINUTES + 1) * SHORT_WINDOW_MINUTES
    truncated = observed_at.replace(second=0, microsecond=0)
    if boundary >= 60:
        return truncated.replace(minute=0) + timedelta(hours=1)
    return truncated.replace(minute=boundary)


def next_long_reset(observed_at: datetime) -> datetime:
    """Return the UTC midnight that follows ``observed_at``."""

    utc = observed_at.astimezone(timezone.utc)
    midnight = utc.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight + timedelta(days=1)


def parse_quota_pair(value: Optional[str]) -> Optional[Tuple[int, int]]:
    """Parse a ``"short,long"`` header value into two integers."""

    if not value:
        return None
    parts = [part.strip() for part in value.split(",")]
    if len(parts) != 2:
        return None
    try:
        return int(parts[0]), int(parts[1])
    except ValueError:
        return None


class RateLimiter:
    """Thread-safe short/long window quota mirror."""

    def __init__(
        self,
        *,
        short_ceiling: int = DEFAULT_SHORT_CEILING,
        long_ceiling: int = DEFAULT_LONG_CEILING,
        clock: Clock = _utcnow,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._lock = threading.Lock()
        self._clock = clock
        self._sleep = sleep
        self._short = RateWindow(ceiling=short_ceiling, usage=0)
        self._long = RateWindow(ceiling=long_ceiling, usage=0)

    def report(
        self,
        short_usage: int,
        short_ceiling: int,
        long_usage: int,
        long_ceiling: int,
        observed_at: Optional[datetime] = None,
    ) -> None:
        observed = observed_at or self._clock()
        with self._lock:
            short, long = self._store(
                short_usage, short_ceiling, long_usage, long_ceiling, observed
            )
        self._log_report(short, long)

    def _store(
        self,
        short_usage: int,
        short_ceiling: int,
        long_usage: int,
        long_ceiling: int,
        observed: datetime,
    ) -> Tuple[RateWindow, RateWindow]:
        # Caller holds self._lock.
        self._short = RateWindow(short_ceiling, short_usage, next_short_reset(observed))
        self._long = RateWindow(long_ceiling, long_usage, next_long_reset(observed))
        return self._short, self._long

    @staticmethod
    def _log_report(short: RateWindow, long: RateWindow) -> None:
        logger.info(
            "Updated rate limit usage short=%s/%s long=%s/%s short_reset=%s long_reset=%s",
            short.usage,
            short.ceiling,
            long.usage,
            long.ceiling,
            short.reset_at.isoformat(),
            long.reset_at.isoformat(),
        )

    def report_headers(
        self, headers: Mapping[str, str], observed_at: Optional[datetime] = None
    ) -> bool:
        """Update the mirror from response headers.

        Returns ``False`` and leaves the state untouched when no usage header
        is present or it cannot be parsed. A missing limit header keeps the
        current ceilings.
        """

        usage = _first_pair(headers, USAGE_HEADERS)
        if usage is None:
            logger.debug("Response carried no parsable rate limit usage headers")
            return False
        limit = _first_pair(headers, LIMIT_HEADERS)
        observed = observed_at or self._clock()
        with self._lock:
            if limit is None:
                limit = (self._short.ceiling, self._long.ceiling)
            short, long = self._store(usage[0], limit[0], usage[1], limit[1], observed)
        self._log_report(short, long)
        return True

    def check(self) -> RateLimitKind:
        with self._lock:
            short, long = self._short, self._long
        if short.ceiling == 0 and long.ceiling == 0:
            return RateLimitKind.NONE
        # An exhausted day makes waiting for the quarter hour pointless.
        if long.exhausted:
            return RateLimitKind.LONG
        if short.exhausted:
            return RateLimitKind.SHORT
        return RateLimitKind.NONE

    def snapshot(self) -> RateLimitSnapshot:
        with self._lock:
            return RateLimitSnapshot(short=self._short, long=self._long)

    def reset_time(self, kind: RateLimitKind) -> Optional[datetime]:
        with self._lock:
            if kind is RateLimitKind.SHORT:
                return self._short.reset_at
            if kind is RateLimitKind.LONG:
                return self._long.reset_at
        return None

    async def wait_for_reset(self, kind: RateLimitKind) -> float:
        """Sleep until the window of ``kind`` has reset.

        Returns the number of seconds slept, ``0.0`` when no wait was needed.
        """

        reset_at = self.reset_time(kind)
        if reset_at is None:
            return 0.0
        now = self._clock()
        if reset_at <= now:
            return 0.0
        return await self._sleep_until(kind, reset_at, now)

    async def back_off(self, kind: RateLimitKind) -> float:
        """Sleep after Strava refused a request with 429.

        Unlike ``wait_for_reset`` this always waits. When the mirrored reset
        time is unknown or already past, the next boundary of the window is
        computed from the clock.
        """

        if kind is RateLimitKind.NONE:
            kind = RateLimitKind.SHORT
        now = self._clock()
        reset_at = self.reset_time(kind)
        if reset_at is None or reset_at <= now:
            if kind is RateLimitKind.LONG:
                reset_at = next_long_reset(now)
            else:
                reset_at = next_short_reset(now)
        return await self._sleep_until(kind, reset_at, now)

    async def _sleep_until(
        self, kind: RateLimitKind, reset_at: datetime, now: datetime
    ) -> float:
        delay = (reset_at - now + RESET_MARGIN).total_seconds()
        logger.info(
            "Rate limit exceeded, waiting for reset kind=%s reset_at=%s wait=%.0fs",
            kind.value,
            reset_at.isoformat(),
            delay,
        )
        await self._sleep(delay)
        logger.info("Rate limit reset, resuming kind=%s", kind.value)
        return delay


def _first_pair(
    headers: Mapping[str, str], names: Tuple[str, ...]
) -> Optional[Tuple[int, int]]:
    for name in names:
        pair = parse_quota_pair(headers.get(name))
        if pair is not None:
            return pair
    return None


__all__ = [
    "RateLimitKind",
    "RateLimitSnapshot",
    "RateLimiter",
    "RateWindow",
    "next_long_reset",
    "next_short_reset",
    "parse_quota_pair",
]
