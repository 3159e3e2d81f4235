from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class UpsertOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"


class PushOutcome(str, Enum):
    APPLIED = "applied"
    SKIPPED = "skipped"
    IGNORED = "ignored"


class SyncReport(BaseModel):
    """Counters describing what one full reconciliation did."""

    user_id: int
    created: int = 0
    renamed: int = 0
    unchanged: int = 0
    skipped: int = 0

    @property
    def writes(self) -> int:
        return self.created + self.renamed


class SyncJobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class SyncJob(BaseModel):
    """Status record for a background full reconciliation."""

    job_id: str
    user_id: int
    status: SyncJobStatus = SyncJobStatus.PENDING
    created_at: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    error: Optional[str] = Field(None, description="Failure message when the job failed.")
    report: Optional[SyncReport] = None

    @property
    def active(self) -> bool:
        return self.status in {SyncJobStatus.PENDING, SyncJobStatus.RUNNING}
