"""Background full-sync jobs with queryable status."""

from __future__ import annotations

import asyncio
import functools
import logging
import uuid
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional

from ...models import SyncJob, SyncJobStatus, SyncReport
from .ports import SyncCancelled

logger = logging.getLogger(__name__)

SyncRunner = Callable[[int, asyncio.Event], Awaitable[SyncReport]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncJobRegistry:
    """Launch ``sync_user`` runs as tasks and remember how they ended.

    At most one job per user is active; starting another while one runs
    returns the running job. Only the newest ``retain_finished`` finished jobs
    are remembered.
    """

    def __init__(
        self,
        runner: SyncRunner,
        *,
        clock: Callable[[], datetime] = _utcnow,
        retain_finished: int = 100,
    ) -> None:
        self._runner = runner
        self._clock = clock
        self._retain_finished = max(1, retain_finished)
        self._jobs: Dict[str, SyncJob] = {}
        self._tasks: Dict[str, asyncio.Task[None]] = {}
        self._cancel_events: Dict[str, asyncio.Event] = {}

    def start(self, user_id: int) -> SyncJob:
        active = self._active_job_for(user_id)
        if active is not None:
            logger.info("Sync for user %s already running as job %s", user_id, active.job_id)
            return active.model_copy()

        job = SyncJob(job_id=uuid.uuid4().hex, user_id=user_id, created_at=self._clock())
        cancel = asyncio.Event()
        self._jobs[job.job_id] = job
        self._cancel_events[job.job_id] = cancel
        task = asyncio.create_task(self._run(job, cancel), name=f"sync-user-{user_id}")
        task.add_done_callback(functools.partial(self._on_done, job))
        self._tasks[job.job_id] = task
        logger.info("Started sync job %s for user %s", job.job_id, user_id)
        return job.model_copy()

    def get(self, job_id: str) -> Optional[SyncJob]:
        job = self._jobs.get(job_id)
        return job.model_copy() if job else None

    def jobs_for(self, user_id: int) -> List[SyncJob]:
        return [job.model_copy() for job in self._jobs.values() if job.user_id == user_id]

    def cancel(self, job_id: str) -> Optional[SyncJob]:
        """Ask a job to stop before its next activity."""

        job = self._jobs.get(job_id)
        if job is None:
            return None
        if job.active:
            self._cancel_events[job_id].set()
        return job.model_copy()

    async def wait(self, job_id: str) -> Optional[SyncJob]:
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.shield(task)
        return self.get(job_id)

    async def shutdown(self) -> None:
        pending = [task for task in self._tasks.values() if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def __len__(self) -> int:
        return len(self._jobs)

    def _active_job_for(self, user_id: int) -> Optional[SyncJob]:
        for job in self._jobs.values():
            if job.user_id == user_id and job.active:
                return job
        return None

    async def _run(self, job: SyncJob, cancel: asyncio.Event) -> None:
        job.status = SyncJobStatus.RUNNING
        job.started_at = self._clock()
        try:
            job.report = await self._runner(job.user_id, cancel)
        except SyncCancelled:
            job.status = SyncJobStatus.CANCELLED
        except asyncio.CancelledError:
            job.status = SyncJobStatus.CANCELLED
            raise
        except Exception as exc:
            logger.exception("Sync job %s for user %s failed", job.job_id, job.user_id)
            job.status = SyncJobStatus.FAILED
            job.error = str(exc) or exc.__class__.__name__
        else:
            job.status = SyncJobStatus.SUCCEEDED
        finally:
            job.finished_at = self._clock()
            logger.info("Sync job %s finished with status %s", job.job_id, job.status.value)

    def _on_done(self, job: SyncJob, task: asyncio.Task[None]) -> None:
        self._tasks.pop(job.job_id, None)
        self._cancel_events.pop(job.job_id, None)
        if job.active:
            # Cancelled before _run got to execute.
            job.status = SyncJobStatus.CANCELLED
            job.finished_at = self._clock()
            logger.info("Sync job %s cancelled before it started", job.job_id)
        self._prune_finished()

    def _prune_finished(self) -> None:
        finished = [job_id for job_id, job in self._jobs.items() if not job.active]
        for job_id in finished[: max(0, len(finished) - self._retain_finished)]:
            del self._jobs[job_id]


__all__ = ["SyncJobRegistry", "SyncRunner"]
