"""Cross-cutting runtime concerns: clients, security and dependency wiring."""

from .clients import RedisClient, get_redis
from .security import api_key_header, verify_api_key

__all__ = ["RedisClient", "api_key_header", "get_redis", "verify_api_key"]
