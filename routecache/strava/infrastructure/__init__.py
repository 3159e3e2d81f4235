"""Infrastructure adapters for the Strava integration."""

from .client import StravaClient, create_strava_client
from .locks import KeyedLocks
from .store import RedisActivityStore, create_activity_store
from .subscriptions import register_webhook
from .tokens import TokenGate, create_token_gate, exchange_authorization_code

__all__ = [
    "KeyedLocks",
    "RedisActivityStore",
    "StravaClient",
    "TokenGate",
    "create_activity_store",
    "create_strava_client",
    "create_token_gate",
    "exchange_authorization_code",
    "register_webhook",
]
