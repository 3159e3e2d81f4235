from __future__ import annotations

import pytest

from routecache.strava.domain.geometry import (
    EMPTY_LINESTRING,
    BoundingBox,
    DecodeError,
    EmptyGeometry,
    bounding_box,
    decode,
    to_line_text,
)

from tests.builders import SAMPLE_BOUNDS, SAMPLE_COORDS, SAMPLE_POLYLINE, SAMPLE_WKT


def test_decode_reference_polyline() -> None:
    assert decode(SAMPLE_POLYLINE) == SAMPLE_COORDS


def test_decode_single_point() -> None:
    assert decode("_p~iF~ps|U") == [(38.5, -120.2)]


@pytest.mark.parametrize(
    "encoded",
    [
        "",
        "_p~iF",  # one value, no longitude
        "_p~i",  # ends inside a value
        "_p~iF ~ps|U",  # space is outside the alphabet
        "_p~iF~ps|U\x7f",
    ],
)
def test_decode_rejects_malformed_input(encoded: str) -> None:
    with pytest.raises(DecodeError):
        decode(encoded)


def test_decode_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        decode("")


def test_bounding_box_of_reference_route() -> None:
    box = bounding_box(SAMPLE_COORDS)

    assert box == BoundingBox(min_lat=38.5, min_lng=-126.453, max_lat=43.252, max_lng=-120.2)
    assert box.as_text() == SAMPLE_BOUNDS


@pytest.mark.parametrize(
    "coords",
    [
        [(1.0, 2.0)],
        [(-10.0, 5.0), (10.0, -5.0)],
        [(0.5, 0.5), (0.1, 0.9), (0.9, 0.1), (0.2, 0.2)],
    ],
)
def test_bounding_box_contains_every_point(coords: list[tuple[float, float]]) -> None:
    box = bounding_box(coords)

    assert box.min_lat <= box.max_lat
    assert box.min_lng <= box.max_lng
    for lat, lng in coords:
        assert box.min_lat <= lat <= box.max_lat
        assert box.min_lng <= lng <= box.max_lng


def test_bounding_box_requires_coordinates() -> None:
    with pytest.raises(EmptyGeometry):
        bounding_box([])


def test_line_text_uses_lng_lat_order() -> None:
    assert to_line_text(SAMPLE_COORDS) == SAMPLE_WKT


def test_line_text_of_no_coordinates() -> None:
    assert to_line_text([]) == EMPTY_LINESTRING
