from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Optional, Type

import httpx
from pydantic import ValidationError

from ...models import Credential, TokenResponse
from ...settings import Settings
from ..application.ports import (
    AuthError,
    CredentialNotFoundError,
    CredentialStore,
    TokenExchangeError,
    TokenRefreshError,
)
from .locks import KeyedLocks

logger = logging.getLogger(__name__)


class TokenGate:
    """Hand out non-expired Strava access tokens, refreshing them on demand."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        store: CredentialStore,
        settings: Settings,
        *,
        locks: Optional[KeyedLocks] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._http_client = http_client
        self._store = store
        self._settings = settings
        self._locks = locks or KeyedLocks()
        self._clock = clock

    async def access_token(self, user_id: int) -> str:
        credential = await self._load(user_id)
        if not credential.is_expired(self._clock()):
            return credential.access_token

        async with self._locks(user_id):
            # Another task may have refreshed while we waited for the lock.
            credential = await self._load(user_id)
            if not credential.is_expired(self._clock()):
                return credential.access_token

            logger.info("Refreshing access token for user %s", user_id)
            refreshed = await self._refresh(credential)
            await self._store.save_credential(refreshed)
            return refreshed.access_token

    async def _load(self, user_id: int) -> Credential:
        credential = await self._store.get_credential(user_id)
        if credential is None:
            raise CredentialNotFoundError(f"No Strava credential stored for user {user_id}")
        return credential

    async def _refresh(self, credential: Credential) -> Credential:
        form = {
            "grant_type": "refresh_token",
            "refresh_token": credential.refresh_token,
        }
        token = await _request_token(
            self._http_client,
            self._settings,
            form,
            error=TokenRefreshError,
            action=f"refresh for user {credential.user_id}",
        )
        return Credential(
            user_id=credential.user_id,
            access_token=token.access_token,
            refresh_token=token.refresh_token or credential.refresh_token,
            expires_at=_expires_at(token, self._clock(), TokenRefreshError),
        )


async def exchange_authorization_code(
    http_client: httpx.AsyncClient,
    store: CredentialStore,
    settings: Settings,
    code: str,
    *,
    clock: Callable[[], float] = time.time,
) -> Credential:
    """Trade an OAuth authorization code for a stored credential.

    The athlete named in the token response becomes a known user, so later
    full syncs and pushed events for them can be served.
    """

    token = await _request_token(
        http_client,
        settings,
        {"grant_type": "authorization_code", "code": code},
        error=TokenExchangeError,
        action="authorization code exchange",
    )
    if token.athlete is None or not token.refresh_token:
        raise TokenExchangeError(
            "Strava token exchange response missing athlete or refresh token"
        )

    credential = Credential(
        user_id=token.athlete.id,
        access_token=token.access_token,
        refresh_token=token.refresh_token,
        expires_at=_expires_at(token, clock(), TokenExchangeError),
    )
    await store.save_credential(credential)
    logger.info("Stored Strava credential for user %s", credential.user_id)
    return credential


async def _request_token(
    http_client: httpx.AsyncClient,
    settings: Settings,
    form: Dict[str, str],
    *,
    error: Type[AuthError],
    action: str,
) -> TokenResponse:
    payload = {
        "client_id": settings.strava_client_id,
        "client_secret": settings.strava_client_secret,
        **form,
    }

    try:
        response = await http_client.post(settings.strava_token_url, data=payload)
    except httpx.HTTPError as exc:
        logger.error("Token %s request failed: %s", action, exc)
        raise error("Failed to reach the Strava token endpoint") from exc

    if response.status_code != 200:
        logger.error(
            "Token %s failed with status %s: %s",
            action,
            response.status_code,
            response.text,
        )
        raise error(
            f"Strava token endpoint rejected the {action} (status {response.status_code})"
        )

    try:
        return TokenResponse.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
        raise error("Strava token response missing access token") from exc


def _expires_at(token: TokenResponse, now: float, error: Type[AuthError]) -> int:
    if token.expires_at is not None:
        return token.expires_at
    if token.expires_in is not None:
        return int(now) + token.expires_in
    raise error("Strava token response missing expiry")


def create_token_gate(
    *,
    http_client: httpx.AsyncClient,
    store: CredentialStore,
    settings: Settings,
    locks: Optional[KeyedLocks] = None,
) -> TokenGate:
    return TokenGate(http_client, store, settings, locks=locks)


__all__ = ["TokenGate", "create_token_gate", "exchange_authorization_code"]
