"""Strava integration package."""

from .application.synchronizer import CacheSynchronizer
from .domain.rate_limit import RateLimiter, RateLimitKind

__all__ = [
    "CacheSynchronizer",
    "RateLimitKind",
    "RateLimiter",
]
