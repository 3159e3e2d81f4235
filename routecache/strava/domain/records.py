from __future__ import annotations

from ...models import ActivityRecord, DetailedActivity
from .geometry import bounding_box, decode, to_line_text

METERS_PER_KILOMETER = 1000.0
MPS_TO_KPH = 3.6


def build_activity_record(detail: DetailedActivity) -> ActivityRecord:
    """Convert Strava activity detail into a cache record.

    Raises ``DecodeError`` or ``EmptyGeometry`` when the route cannot be used.
    """

    coords = decode(detail.polyline)
    bounds = bounding_box(coords)
    return ActivityRecord(
        id=detail.id,
        user_id=detail.athlete.id,
        name=detail.name,
        start_date=detail.start_date,
        elapsed_time=detail.elapsed_time,
        moving_time=detail.moving_time,
        distance=detail.distance / METERS_PER_KILOMETER,
        average_speed=detail.average_speed * MPS_TO_KPH,
        elevation=detail.total_elevation_gain,
        sport_type=detail.sport_type,
        route=detail.polyline,
        bounds=bounds.as_text(),
        geom=to_line_text(coords),
    )
