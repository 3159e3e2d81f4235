from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class Credential(BaseModel):
    """OAuth credential used to call Strava on behalf of one athlete."""

    user_id: int
    access_token: str
    refresh_token: str
    expires_at: int = Field(..., description="Access token expiry as epoch seconds.")

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now


class ActivityRecord(BaseModel):
    """Cached activity with its derived route geometry."""

    id: int
    user_id: int
    name: str
    start_date: Optional[datetime] = None
    elapsed_time: int = 0
    moving_time: int = 0
    distance: float = Field(0.0, description="Distance in kilometres.")
    average_speed: float = Field(0.0, description="Average speed in km/h.")
    elevation: float = Field(0.0, description="Total ascent in metres.")
    sport_type: Optional[str] = None
    route: str = Field(..., description="Encoded polyline of the full route.")
    bounds: str = Field(..., description="minLat,minLng,maxLat,maxLng")
    geom: str = Field(..., description="WKT LINESTRING in lng/lat order.")
