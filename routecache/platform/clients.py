from __future__ import annotations

from typing import List, Optional, Protocol

from fastapi import Depends
from upstash_redis import Redis

from ..settings import Settings, get_settings


class RedisClient(Protocol):
    """Minimal Redis client interface used by the application."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str, ex: int | None = None) -> None:
        ...

    def exists(self, *keys: str) -> int:
        ...

    def sadd(self, key: str, *members: str) -> int:
        ...

    def smembers(self, key: str) -> List[str]:
        ...

    def srem(self, key: str, *members: str) -> int:
        ...

    def mget(self, *keys: str) -> List[Optional[str]]:
        ...


def get_redis(settings: Settings = Depends(get_settings)) -> RedisClient:
    """Factory helper that provides a Redis client instance."""

    return Redis(
        url=settings.upstash_redis_rest_url,
        token=settings.upstash_redis_rest_token,
    )


__all__ = ["RedisClient", "get_redis"]
