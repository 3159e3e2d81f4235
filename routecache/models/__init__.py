from .activity import ActivityRecord, Credential
from .events import AspectType, ObjectType, PushAck, PushEvent
from .strava import (
    AthleteRef,
    DetailedActivity,
    PolylineMap,
    SummaryActivity,
    TokenResponse,
)
from .sync import (
    PushOutcome,
    SyncJob,
    SyncJobStatus,
    SyncReport,
    UpsertOutcome,
)

__all__ = [
    'ActivityRecord',
    'AspectType',
    'AthleteRef',
    'Credential',
    'DetailedActivity',
    'ObjectType',
    'PolylineMap',
    'PushAck',
    'PushEvent',
    'PushOutcome',
    'SummaryActivity',
    'SyncJob',
    'SyncJobStatus',
    'SyncReport',
    'TokenResponse',
    'UpsertOutcome',
]
