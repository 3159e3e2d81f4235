from __future__ import annotations

import logging
import secrets

from fastapi import Depends, HTTPException, Security
from fastapi.security import APIKeyHeader

from ..settings import Settings, get_settings

logger = logging.getLogger(__name__)

api_key_header: APIKeyHeader = APIKeyHeader(
    name="x-api-key", scheme_name="ApiKeyAuth", auto_error=False
)


def verify_api_key(
    x_api_key: str | None = Security(api_key_header),
    settings: Settings = Depends(get_settings),
) -> None:
    """Guard the operator endpoints with the shared API key."""

    if x_api_key and secrets.compare_digest(x_api_key, settings.api_key):
        return
    logger.warning("Rejected sync request with %s API key", "a wrong" if x_api_key else "no")
    raise HTTPException(status_code=401, detail={"error": "Unauthorized"})


__all__ = ["api_key_header", "verify_api_key"]
