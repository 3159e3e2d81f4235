"""Ports and error taxonomy for the Strava synchronisation layer."""

from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable

from ...models import ActivityRecord, Credential, DetailedActivity, SummaryActivity, UpsertOutcome


class StravaError(RuntimeError):
    """Base class for failures talking to Strava or the cache."""


class TransportError(StravaError):
    """Raised when Strava cannot be reached or answers with garbage."""


class RateLimitExhaustedError(TransportError):
    """Raised when a request keeps hitting 429 past the retry ceiling."""


class AuthError(StravaError):
    """Raised when no valid access token can be produced for a user."""


class CredentialNotFoundError(AuthError):
    """Raised when no credential is stored for the user."""


class TokenRefreshError(AuthError):
    """Raised when refreshing an expired access token fails."""


class TokenExchangeError(AuthError):
    """Raised when an authorization code cannot be traded for a credential."""


class RemoteError(StravaError):
    """Raised for non-2xx Strava responses other than 429."""

    def __init__(self, status_code: int, message: str = "") -> None:
        self.status_code = status_code
        detail = f": {message}" if message else ""
        super().__init__(f"Strava responded with status {status_code}{detail}")


class PersistenceError(StravaError):
    """Raised when the cache store cannot complete a read or write."""


class SyncCancelled(StravaError):
    """Raised when a full sync is stopped through its cancel signal."""


@runtime_checkable
class ActivitySourcePort(Protocol):
    """Port exposing the Strava reads used by the synchronizer."""

    async def list_summaries(
        self, user_id: int, max_pages: int = 0
    ) -> List[SummaryActivity]:
        """Return the athlete's activity summaries, newest first."""

    async def get_detail(self, activity_id: int, user_id: int) -> DetailedActivity:
        """Return the full detail of one activity."""


@runtime_checkable
class CredentialStore(Protocol):
    """Port for persisted OAuth credentials."""

    async def get_credential(self, user_id: int) -> Optional[Credential]:
        """Return the stored credential or ``None``."""

    async def save_credential(self, credential: Credential) -> None:
        """Replace the stored credential in a single write."""

    async def list_user_ids(self) -> List[int]:
        """Return every user with a stored credential."""


@runtime_checkable
class ActivityStore(Protocol):
    """Port for cached activity records."""

    async def list_records(self, user_id: int) -> List[ActivityRecord]:
        """Return every record owned by the user, most recent first."""

    async def get_record(
        self, activity_id: int, user_id: Optional[int] = None
    ) -> Optional[ActivityRecord]:
        """Return the record, optionally scoped to its owner."""

    async def record_exists(self, activity_id: int) -> bool:
        """Return whether any user owns a record with this id."""

    async def insert_record(self, record: ActivityRecord) -> None:
        """Persist a record that does not exist yet."""

    async def update_record(self, record: ActivityRecord) -> None:
        """Overwrite every field of an existing record."""

    async def update_name(self, activity_id: int, user_id: int, name: str) -> None:
        """Patch only the display name of an existing record."""

    async def upsert(self, record: ActivityRecord) -> UpsertOutcome:
        """Insert or overwrite the record as one atomic operation."""


__all__ = [
    "ActivitySourcePort",
    "ActivityStore",
    "AuthError",
    "CredentialNotFoundError",
    "CredentialStore",
    "PersistenceError",
    "RateLimitExhaustedError",
    "RemoteError",
    "StravaError",
    "SyncCancelled",
    "TokenExchangeError",
    "TokenRefreshError",
    "TransportError",
]
