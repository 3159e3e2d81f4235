from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PolylineMap(BaseModel):
    """The ``map`` object attached to Strava activities."""

    id: Optional[str] = None
    polyline: Optional[str] = None
    summary_polyline: Optional[str] = None


class AthleteRef(BaseModel):
    id: int


class SummaryActivity(BaseModel):
    """Subset of fields returned by the athlete activities list endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str = ""
    sport_type: Optional[str] = None
    map_: Optional[PolylineMap] = Field(default=None, alias="map")

    @property
    def summary_polyline(self) -> str:
        if self.map_ is None:
            return ""
        return self.map_.summary_polyline or ""


class DetailedActivity(BaseModel):
    """Subset of fields returned by the activity detail endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    athlete: AthleteRef
    name: str = ""
    start_date: Optional[datetime] = None
    elapsed_time: int = 0
    moving_time: int = 0
    distance: float = 0.0
    average_speed: float = 0.0
    total_elevation_gain: float = 0.0
    sport_type: Optional[str] = None
    map_: Optional[PolylineMap] = Field(default=None, alias="map")

    @property
    def polyline(self) -> str:
        if self.map_ is None:
            return ""
        return self.map_.polyline or ""


class TokenResponse(BaseModel):
    """Payload returned by the OAuth token endpoint."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None
    expires_in: Optional[int] = None
    token_type: Optional[str] = None
    athlete: Optional[AthleteRef] = None
