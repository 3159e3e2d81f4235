"""Application layer for Strava synchronisation."""

from .events import dispatch_push_event
from .jobs import SyncJobRegistry
from .ports import (
    ActivitySourcePort,
    ActivityStore,
    AuthError,
    CredentialNotFoundError,
    CredentialStore,
    PersistenceError,
    RateLimitExhaustedError,
    RemoteError,
    StravaError,
    SyncCancelled,
    TokenExchangeError,
    TokenRefreshError,
    TransportError,
)
from .synchronizer import AllUsersSyncResult, CacheSynchronizer, sync_all_users

__all__ = [
    "ActivitySourcePort",
    "ActivityStore",
    "AllUsersSyncResult",
    "AuthError",
    "CacheSynchronizer",
    "CredentialNotFoundError",
    "CredentialStore",
    "PersistenceError",
    "RateLimitExhaustedError",
    "RemoteError",
    "StravaError",
    "SyncCancelled",
    "SyncJobRegistry",
    "TokenExchangeError",
    "TokenRefreshError",
    "TransportError",
    "dispatch_push_event",
    "sync_all_users",
]
