"""Encoded polyline decoding and derived route geometry.

Strava ships routes in Google's encoded polyline format (precision 5). The
cache stores the raw string alongside a bounding box and a WKT line so spatial
consumers never have to decode it themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

Coordinate = Tuple[float, float]

EMPTY_LINESTRING = "LINESTRING EMPTY"

_PRECISION = 1e5
_MIN_CHAR = 63
_MAX_CHAR = 126
_CONTINUATION_BIT = 0x20
_CHUNK_MASK = 0x1F


class GeometryError(ValueError):
    """Base class for route geometry failures."""


class DecodeError(GeometryError):
    """Raised when an encoded polyline is empty or malformed."""


class EmptyGeometry(GeometryError):
    """Raised when a geometry operation needs at least one coordinate."""


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    min_lng: float
    max_lat: float
    max_lng: float

    def as_text(self) -> str:
        """Serialise as ``minLat,minLng,maxLat,maxLng`` with six decimals."""
        return f"{self.min_lat:f},{self.min_lng:f},{self.max_lat:f},{self.max_lng:f}"


def _decode_values(encoded: str) -> List[int]:
    values: List[int] = []
    result = 0
    shift = 0
    in_chunk = False
    for position, char in enumerate(encoded):
        code = ord(char)
        if code < _MIN_CHAR or code > _MAX_CHAR:
            raise DecodeError(
                f"Invalid polyline character {char!r} at position {position}"
            )
        chunk = code - _MIN_CHAR
        result |= (chunk & _CHUNK_MASK) << shift
        shift += 5
        in_chunk = True
        if chunk < _CONTINUATION_BIT:
            values.append(~(result >> 1) if result & 1 else result >> 1)
            result = 0
            shift = 0
            in_chunk = False
    if in_chunk:
        raise DecodeError("Polyline ends in the middle of a value")
    return values


def decode(encoded: str) -> List[Coordinate]:
    """Decode an encoded polyline into ``(lat, lng)`` pairs.

    The whole string is validated before any coordinate is returned, so a
    malformed input never yields a partial route.
    """

    if not encoded:
        raise DecodeError("Polyline is empty")

    values = _decode_values(encoded)
    if len(values) % 2:
        raise DecodeError("Polyline holds an odd number of values")

    coords: List[Coordinate] = []
    lat = 0
    lng = 0
    for index in range(0, len(values), 2):
        lat += values[index]
        lng += values[index + 1]
        coords.append((lat / _PRECISION, lng / _PRECISION))
    return coords


def bounding_box(coords: Sequence[Coordinate]) -> BoundingBox:
    if not coords:
        raise EmptyGeometry("No coordinates to bound")

    lats = [lat for lat, _ in coords]
    lngs = [lng for _, lng in coords]
    return BoundingBox(
        min_lat=min(lats),
        min_lng=min(lngs),
        max_lat=max(lats),
        max_lng=max(lngs),
    )


def to_line_text(coords: Sequence[Coordinate]) -> str:
    """Render coordinates as WKT, swapping to ``lng lat`` axis order."""

    if not coords:
        return EMPTY_LINESTRING
    points = ", ".join(f"{lng} {lat}" for lat, lng in coords)
    return f"LINESTRING({points})"


__all__ = [
    "BoundingBox",
    "Coordinate",
    "DecodeError",
    "EMPTY_LINESTRING",
    "EmptyGeometry",
    "GeometryError",
    "bounding_box",
    "decode",
    "to_line_text",
]
