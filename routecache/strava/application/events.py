from __future__ import annotations

import logging

from ...models import AspectType, ObjectType, PushEvent, PushOutcome, UpsertOutcome
from .synchronizer import CacheSynchronizer

logger = logging.getLogger(__name__)


async def dispatch_push_event(
    event: PushEvent, synchronizer: CacheSynchronizer
) -> PushOutcome:
    """Route a webhook event to the matching cache operation."""

    logger.info(
        "Received Strava push event object_type=%s aspect_type=%s owner_id=%s object_id=%s",
        event.object_type.value,
        event.aspect_type.value,
        event.owner_id,
        event.object_id,
    )

    match (event.object_type, event.aspect_type):
        case (ObjectType.ACTIVITY, AspectType.CREATE | AspectType.UPDATE):
            outcome = await synchronizer.apply_pushed_activity(
                event.object_id, event.owner_id
            )
            if outcome is UpsertOutcome.SKIPPED:
                return PushOutcome.SKIPPED
            return PushOutcome.APPLIED
        case (ObjectType.ACTIVITY, AspectType.DELETE):
            # Cached records are kept; deletions are not mirrored.
            logger.info("Ignoring delete event for activity %s", event.object_id)
            return PushOutcome.IGNORED
        case _:
            logger.info("Ignoring push event for object type %s", event.object_type.value)
            return PushOutcome.IGNORED


__all__ = ["dispatch_push_event"]
