from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, field_validator

from .sync import PushOutcome


class AspectType(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class ObjectType(str, Enum):
    ACTIVITY = "activity"
    OTHER = "other"


class PushEvent(BaseModel):
    """Payload sent by the Strava webhook.

    ``object_type`` collapses everything that is not an activity (athlete
    deauthorisations, for instance) into ``ObjectType.OTHER``.
    """

    object_type: ObjectType
    object_id: int
    aspect_type: AspectType
    owner_id: int
    subscription_id: Optional[int] = None
    event_time: Optional[int] = None
    updates: Dict[str, Any] | None = None

    @field_validator("object_type", mode="before")
    @classmethod
    def _collapse_object_type(cls, value: Any) -> str:
        if isinstance(value, ObjectType):
            return value.value
        return ObjectType.ACTIVITY.value if value == "activity" else ObjectType.OTHER.value


class PushAck(BaseModel):
    """Acknowledgement returned to Strava for every accepted push event."""

    status: PushOutcome
    object_id: int
    aspect_type: AspectType
