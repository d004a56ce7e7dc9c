import math

import numpy as np
import pytest
from pydantic import ValidationError

from trackshield.geometry import (
    METERS_PER_DEGREE,
    BoundingBox,
    TrackPoint,
    haversine_distance,
    haversine_distances,
    offset_coordinate,
    perpendicular_distance,
    to_xy_array,
)


def test_haversine_distance() -> None:
    # Berlin -> Munich
    assert haversine_distance(52.5200, 13.4050, 48.1351, 11.5820) == pytest.approx(
        504_000, rel=0.01
    )
    assert haversine_distance(52.52, 13.405, 52.52, 13.405) == 0


def test_haversine_distances_match_scalar() -> None:
    latitudes = np.array([52.52, 48.1351, -33.8688, 0.0])
    longitudes = np.array([13.405, 11.582, 151.2093, 0.0])

    distances = haversine_distances(latitudes, longitudes, 50.0, 10.0)

    for lat, lon, distance in zip(latitudes, longitudes, distances):
        assert distance == pytest.approx(haversine_distance(lat, lon, 50.0, 10.0))


@pytest.mark.parametrize(
    ("point", "expected"),
    [
        # Above the middle of the segment
        (TrackPoint(latitude=1.0, longitude=0.5), 1.0),
        # On the segment
        (TrackPoint(latitude=0.0, longitude=0.25), 0.0),
        # Beyond the end, measured to the endpoint
        (TrackPoint(latitude=0.0, longitude=2.0), 1.0),
        (TrackPoint(latitude=3.0, longitude=-4.0), 5.0),
    ],
)
def test_perpendicular_distance(point: TrackPoint, expected: float) -> None:
    start = TrackPoint(latitude=0.0, longitude=0.0)
    end = TrackPoint(latitude=0.0, longitude=1.0)

    assert perpendicular_distance(point, start, end) == pytest.approx(expected)


def test_perpendicular_distance_zero_length_segment() -> None:
    anchor = TrackPoint(latitude=1.0, longitude=1.0)
    point = TrackPoint(latitude=4.0, longitude=5.0)

    assert perpendicular_distance(point, anchor, anchor) == pytest.approx(5.0)


def test_to_xy_array() -> None:
    points = [
        TrackPoint(latitude=1.0, longitude=2.0),
        TrackPoint(latitude=3.0, longitude=4.0),
    ]
    assert to_xy_array(points).tolist() == [[2.0, 1.0], [4.0, 3.0]]
    assert to_xy_array([]).shape == (0, 2)


def test_offset_coordinate() -> None:
    lat, lon = offset_coordinate(0.0, 0.0, METERS_PER_DEGREE, math.pi / 2)
    assert lat == pytest.approx(1.0)
    assert lon == pytest.approx(0.0, abs=1e-12)

    # East at 60 degree latitude is stretched by 1 / cos(60)
    lat, lon = offset_coordinate(60.0, 10.0, METERS_PER_DEGREE, 0.0)
    assert lat == pytest.approx(60.0)
    assert lon == pytest.approx(12.0)


def test_offset_coordinate_crosses_antimeridian() -> None:
    lat, lon = offset_coordinate(0.0, 179.5, METERS_PER_DEGREE, 0.0)
    assert lat == pytest.approx(0.0)
    assert lon == pytest.approx(-179.5)

    _, lon = offset_coordinate(0.0, -179.5, METERS_PER_DEGREE, math.pi)
    assert lon == pytest.approx(179.5)


def test_offset_coordinate_near_pole() -> None:
    # 1 / cos(89.99) stretches 1 km east to more than 51 degrees
    lat, lon = offset_coordinate(89.99, 179.9, 1000.0, 0.0)
    assert -180.0 <= lon < 180.0
    assert lat == pytest.approx(89.99)

    lat, _ = offset_coordinate(89.995, 0.0, 1500.0, math.pi / 2)
    assert lat == 90.0

    # Model validation accepts the result
    TrackPoint(latitude=lat, longitude=lon)


@pytest.mark.parametrize(
    "data",
    [
        {"latitude": 90.1, "longitude": 0},
        {"latitude": 0, "longitude": -180.1},
    ],
)
def test_track_point_ranges(data: dict) -> None:
    with pytest.raises(ValidationError):
        TrackPoint.model_validate(data)


def test_bounding_box() -> None:
    bbox = BoundingBox(
        min_longitude=13.0, min_latitude=52.0, max_longitude=14.0, max_latitude=53.0
    )
    assert bbox.contains(52.0, 14.0)
    assert not bbox.contains(51.99, 13.5)

    with pytest.raises(ValidationError):
        BoundingBox(
            min_longitude=14.0, min_latitude=52.0, max_longitude=13.0, max_latitude=53.0
        )
