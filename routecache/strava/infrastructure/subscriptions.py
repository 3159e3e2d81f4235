"""Registration of the Strava push subscription that feeds the webhook."""

from __future__ import annotations

import logging
from typing import Any, Dict

import httpx

from ...settings import Settings
from ..application.ports import RemoteError, TransportError

logger = logging.getLogger(__name__)


async def register_webhook(
    http_client: httpx.AsyncClient, settings: Settings
) -> Dict[str, Any]:
    """Ensure a push subscription points at ``settings.strava_webhook_url``.

    Strava allows one subscription per application. An existing subscription
    with the same callback URL is returned as-is.
    """

    if not settings.strava_webhook_url:
        raise ValueError("STRAVA_WEBHOOK_URL must be set to register the webhook")

    url = f"{settings.strava_api_base_url.rstrip('/')}/push_subscriptions"
    credentials = {
        "client_id": settings.strava_client_id,
        "client_secret": settings.strava_client_secret,
    }

    try:
        existing = await http_client.get(url, params=credentials)
    except httpx.HTTPError as exc:
        raise TransportError("Failed to list Strava push subscriptions") from exc
    if existing.status_code != 200:
        raise RemoteError(existing.status_code, existing.text)

    for subscription in existing.json() or []:
        if subscription.get("callback_url") == settings.strava_webhook_url:
            logger.info("Webhook already registered id=%s", subscription.get("id"))
            return subscription

    payload = {
        **credentials,
        "callback_url": settings.strava_webhook_url,
        "verify_token": settings.strava_verify_token,
    }
    try:
        response = await http_client.post(url, data=payload)
    except httpx.HTTPError as exc:
        raise TransportError("Failed to register Strava push subscription") from exc
    if response.status_code != 201:
        raise RemoteError(response.status_code, response.text)

    created = response.json()
    logger.info("Webhook registered id=%s", created.get("id"))
    return created
