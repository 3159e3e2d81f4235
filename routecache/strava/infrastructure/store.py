"""Redis-backed cache of credentials and activity records.

Each record and credential is one JSON document under its own key. A set per
user indexes the ids of that user's cached activities for the read path. Upserts and name patches take a per-activity lock
owned by the store; there is no global write lock.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional, Tuple, TypeVar

import httpx
from pydantic import ValidationError
from upstash_redis.errors import UpstashError

from ...models import ActivityRecord, Credential, UpsertOutcome
from ...platform.clients import RedisClient
from ..application.ports import ActivityStore, CredentialStore, PersistenceError
from .locks import KeyedLocks

logger = logging.getLogger(__name__)

KEY_PREFIX = "routecache"
USERS_KEY = f"{KEY_PREFIX}:users"

_STORE_ERRORS = (UpstashError, httpx.HTTPError)

T = TypeVar("T")


def credential_key(user_id: int) -> str:
    return f"{KEY_PREFIX}:credential:{user_id}"


def activity_key(activity_id: int) -> str:
    return f"{KEY_PREFIX}:activity:{activity_id}"


def user_activities_key(user_id: int) -> str:
    return f"{KEY_PREFIX}:user:{user_id}:activities"


class RedisActivityStore(ActivityStore, CredentialStore):
    """Persist credentials and activity records in Redis."""

    def __init__(self, redis: RedisClient, *, locks: Optional[KeyedLocks] = None) -> None:
        self._redis = redis
        self._locks = locks or KeyedLocks()

    async def get_credential(self, user_id: int) -> Optional[Credential]:
        raw = self._call(self._redis.get, credential_key(user_id))
        if raw is None:
            return None
        return self._parse(Credential, raw, credential_key(user_id))

    async def save_credential(self, credential: Credential) -> None:
        self._call(
            self._redis.set,
            credential_key(credential.user_id),
            credential.model_dump_json(),
        )
        self._call(self._redis.sadd, USERS_KEY, str(credential.user_id))

    async def list_user_ids(self) -> List[int]:
        members = self._call(self._redis.smembers, USERS_KEY) or []
        return sorted(int(member) for member in members)

    async def list_records(self, user_id: int) -> List[ActivityRecord]:
        """Return the user's cached activities, most recent first."""

        members = self._call(self._redis.smembers, user_activities_key(user_id)) or []
        if not members:
            return []
        keys = [activity_key(int(member)) for member in members]
        records = []
        for key, raw in zip(keys, self._call(self._redis.mget, *keys)):
            if raw is None:
                continue
            record = self._parse(ActivityRecord, raw, key)
            if record.user_id == user_id:
                records.append(record)
        records.sort(key=_recency, reverse=True)
        return records

    async def get_record(
        self, activity_id: int, user_id: Optional[int] = None
    ) -> Optional[ActivityRecord]:
        raw = self._call(self._redis.get, activity_key(activity_id))
        if raw is None:
            return None
        record = self._parse(ActivityRecord, raw, activity_key(activity_id))
        if user_id is not None and record.user_id != user_id:
            return None
        return record

    async def record_exists(self, activity_id: int) -> bool:
        return bool(self._call(self._redis.exists, activity_key(activity_id)))

    async def insert_record(self, record: ActivityRecord) -> None:
        if await self.record_exists(record.id):
            raise PersistenceError(f"Activity {record.id} is already cached")
        self._write(record)

    async def update_record(self, record: ActivityRecord) -> None:
        current = await self.get_record(record.id)
        if current is None:
            raise PersistenceError(f"Activity {record.id} is not cached")
        if current.user_id != record.user_id:
            self._call(
                self._redis.srem, user_activities_key(current.user_id), str(record.id)
            )
        self._write(record)

    async def update_name(self, activity_id: int, user_id: int, name: str) -> None:
        async with self._locks(activity_id):
            record = await self.get_record(activity_id, user_id)
            if record is None:
                raise PersistenceError(
                    f"Activity {activity_id} of user {user_id} is not cached"
                )
            self._write(record.model_copy(update={"name": name}))

    async def upsert(self, record: ActivityRecord) -> UpsertOutcome:
        async with self._locks(record.id):
            if await self.record_exists(record.id):
                await self.update_record(record)
                return UpsertOutcome.UPDATED
            await self.insert_record(record)
            return UpsertOutcome.CREATED

    def _write(self, record: ActivityRecord) -> None:
        self._call(self._redis.set, activity_key(record.id), record.model_dump_json())
        self._call(self._redis.sadd, user_activities_key(record.user_id), str(record.id))

    @staticmethod
    def _call(operation: Callable[..., T], *args: Any) -> T:
        try:
            return operation(*args)
        except _STORE_ERRORS as exc:
            logger.error("Redis operation %s failed: %s", operation.__name__, exc)
            raise PersistenceError(str(exc)) from exc

    @staticmethod
    def _parse(model: type, raw: str, key: str) -> Any:
        try:
            return model.model_validate_json(raw)
        except ValidationError as exc:
            raise PersistenceError(f"Corrupt cache entry {key}") from exc


def _recency(record: ActivityRecord) -> Tuple[float, int]:
    started = record.start_date.timestamp() if record.start_date else float("-inf")
    return started, record.id

def create_activity_store(
    *, redis: RedisClient, locks: Optional[KeyedLocks] = None
) -> RedisActivityStore:
    """Create a Redis store without FastAPI dependencies."""
    return RedisActivityStore(redis, locks=locks)


__all__ = [
    "RedisActivityStore",
    "activity_key",
    "create_activity_store",
    "credential_key",
    "user_activities_key",
]
