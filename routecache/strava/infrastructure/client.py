from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from ...models import DetailedActivity, SummaryActivity
from ...settings import Settings
from ..application.ports import (
    ActivitySourcePort,
    RateLimitExhaustedError,
    RemoteError,
    TransportError,
)
from ..domain.rate_limit import RateLimiter, RateLimitKind
from .tokens import TokenGate

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 200


class StravaClient(ActivitySourcePort):
    """HTTP client for Strava that respects the shared read quota.

    Every request goes through the token gate and the rate limiter. A 429
    response is retried after the limiter's reset time, or the next window
    boundary when no reset is known, at most ``max_attempts`` times per request.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        tokens: TokenGate,
        rate_limiter: RateLimiter,
        settings: Settings,
    ) -> None:
        self._http_client = http_client
        self._tokens = tokens
        self._rate_limiter = rate_limiter
        self._base_url = settings.strava_api_base_url.rstrip("/")
        self._page_size = max(1, min(settings.strava_page_size, MAX_PAGE_SIZE))
        self._max_attempts = max(1, settings.strava_max_attempts)

    async def list_summaries(
        self, user_id: int, max_pages: int = 0
    ) -> List[SummaryActivity]:
        """Fetch the athlete's activities page by page.

        Stops at the first empty page, or after ``max_pages`` pages when it is
        positive.
        """

        logger.info("Listing activities for user %s", user_id)
        activities: List[SummaryActivity] = []
        page = 1
        while True:
            batch = await self.list_summaries_page(user_id, page)
            if not batch:
                break
            activities.extend(batch)
            if max_pages > 0 and page >= max_pages:
                break
            page += 1
        return activities

    async def list_summaries_page(self, user_id: int, page: int) -> List[SummaryActivity]:
        logger.info("Fetching activities page %s for user %s", page, user_id)
        payload = await self._get_json(
            user_id,
            "/athlete/activities",
            params={"page": page, "per_page": self._page_size},
        )
        if not isinstance(payload, list):
            raise TransportError(f"Unexpected activities payload for page {page}")
        try:
            return [SummaryActivity.model_validate(item) for item in payload]
        except ValidationError as exc:
            raise TransportError(f"Malformed activities payload for page {page}") from exc

    async def get_detail(self, activity_id: int, user_id: int) -> DetailedActivity:
        logger.info("Fetching activity %s for user %s", activity_id, user_id)
        payload = await self._get_json(user_id, f"/activities/{activity_id}")
        try:
            return DetailedActivity.model_validate(payload)
        except ValidationError as exc:
            raise TransportError(f"Malformed payload for activity {activity_id}") from exc

    async def _get_json(
        self, user_id: int, path: str, params: Optional[Dict[str, Any]] = None
    ) -> Any:
        url = f"{self._base_url}{path}"
        throttled: Optional[RateLimitKind] = None
        for attempt in range(1, self._max_attempts + 1):
            if throttled is not None:
                await self._rate_limiter.back_off(throttled)
            else:
                limit = self._rate_limiter.check()
                if limit is not RateLimitKind.NONE:
                    await self._rate_limiter.wait_for_reset(limit)

            access_token = await self._tokens.access_token(user_id)
            try:
                response = await self._http_client.get(
                    url,
                    headers={"Authorization": f"Bearer {access_token}"},
                    params=params,
                )
            except httpx.HTTPError as exc:
                logger.error("Request to %s failed: %s", path, exc)
                raise TransportError(f"Failed to reach Strava for {path}") from exc

            self._rate_limiter.report_headers(response.headers)

            if response.status_code == 429:
                logger.warning(
                    "Rate limited on %s user=%s attempt=%s/%s",
                    path,
                    user_id,
                    attempt,
                    self._max_attempts,
                )
                # The wait happens before the next attempt, never after the last.
                throttled = self._rate_limiter.check()
                if throttled is RateLimitKind.NONE:
                    throttled = RateLimitKind.SHORT
                continue

            if not response.is_success:
                logger.error(
                    "Strava request %s failed with status %s", path, response.status_code
                )
                raise RemoteError(response.status_code, response.text)

            try:
                return response.json()
            except ValueError as exc:
                raise TransportError(f"Invalid JSON returned for {path}") from exc

        raise RateLimitExhaustedError(
            f"Still rate limited on {path} after {self._max_attempts} attempts"
        )


def create_strava_client(
    *,
    http_client: httpx.AsyncClient,
    tokens: TokenGate,
    rate_limiter: RateLimiter,
    settings: Settings,
) -> StravaClient:
    """Create a Strava client without FastAPI dependencies."""
    return StravaClient(http_client, tokens, rate_limiter, settings)


__all__ = ["MAX_PAGE_SIZE", "StravaClient", "create_strava_client"]
