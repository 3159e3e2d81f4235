from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from ...models import ActivityRecord, DetailedActivity, SyncReport, UpsertOutcome
from ..domain.geometry import GeometryError
from ..domain.records import build_activity_record
from .ports import ActivitySourcePort, ActivityStore, CredentialStore, SyncCancelled

logger = logging.getLogger(__name__)


class CacheSynchronizer:
    """Keeps the local activity cache consistent with Strava.

    ``sync_user`` reconciles the full remote list against the cache and
    ``apply_pushed_activity`` applies a single webhook notification.
    """

    def __init__(self, client: ActivitySourcePort, store: ActivityStore) -> None:
        self._client = client
        self._store = store

    async def sync_user(
        self, user_id: int, cancel: Optional[asyncio.Event] = None
    ) -> SyncReport:
        """Reconcile every remote activity of ``user_id`` with the cache.

        New activities are fetched in full and stored, renamed ones get their
        name patched. Any fetch or store failure aborts the whole sync; the
        cache is left partially updated and a re-run picks up where it
        stopped. ``cancel`` is checked between activities.
        """

        logger.info("Updating activity cache for user %s", user_id)
        summaries = await self._client.list_summaries(user_id, 0)
        report = SyncReport(user_id=user_id)

        for summary in summaries:
            if cancel is not None and cancel.is_set():
                logger.info("Sync for user %s cancelled", user_id)
                raise SyncCancelled(f"Sync for user {user_id} was cancelled")

            if not summary.summary_polyline:
                logger.info(
                    "Skipping activity with empty polyline id=%s sport_type=%s",
                    summary.id,
                    summary.sport_type,
                )
                report.skipped += 1
                continue

            existing = await self._store.get_record(summary.id, user_id)
            if existing is None:
                detail = await self._client.get_detail(summary.id, user_id)
                record = self._build_record(detail)
                if record is None:
                    report.skipped += 1
                    continue
                await self._store.upsert(record)
                report.created += 1
            elif existing.name != summary.name:
                logger.info(
                    "Activity name changed id=%s old=%r new=%r",
                    summary.id,
                    existing.name,
                    summary.name,
                )
                await self._store.update_name(summary.id, user_id, summary.name)
                report.renamed += 1
            else:
                report.unchanged += 1

        logger.info(
            "Finished cache update for user %s created=%s renamed=%s unchanged=%s skipped=%s",
            user_id,
            report.created,
            report.renamed,
            report.unchanged,
            report.skipped,
        )
        return report

    async def apply_pushed_activity(
        self, activity_id: int, owner_id: int
    ) -> UpsertOutcome:
        detail = await self._client.get_detail(activity_id, owner_id)
        record = self._build_record(detail)
        if record is None:
            return UpsertOutcome.SKIPPED

        outcome = await self._store.upsert(record)
        logger.info(
            "Applied pushed activity id=%s owner=%s outcome=%s",
            activity_id,
            owner_id,
            outcome.value,
        )
        return outcome

    @staticmethod
    def _build_record(detail: DetailedActivity) -> Optional[ActivityRecord]:
        if not detail.polyline:
            logger.info(
                "Skipping activity with empty polyline id=%s sport_type=%s",
                detail.id,
                detail.sport_type,
            )
            return None
        try:
            return build_activity_record(detail)
        except GeometryError as exc:
            logger.warning("Skipping activity %s with unusable route: %s", detail.id, exc)
            return None


@dataclass
class AllUsersSyncResult:
    reports: Dict[int, SyncReport] = field(default_factory=dict)
    failures: Dict[int, str] = field(default_factory=dict)


async def sync_all_users(
    synchronizer: CacheSynchronizer, credentials: CredentialStore
) -> AllUsersSyncResult:
    """Run a full sync for every known user, one after another.

    A failing user is recorded and the loop moves on to the next one.
    """

    result = AllUsersSyncResult()
    for user_id in await credentials.list_user_ids():
        try:
            result.reports[user_id] = await synchronizer.sync_user(user_id)
        except Exception as exc:
            logger.exception("Failed to update activity cache for user %s", user_id)
            result.failures[user_id] = str(exc)
    return result


__all__ = ["AllUsersSyncResult", "CacheSynchronizer", "sync_all_users"]
