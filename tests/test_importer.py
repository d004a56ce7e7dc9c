import json

import pytest
from geo_track_analyzer import PyTrack

from trackshield.geometry import TrackPoint
from trackshield.result import Err, Ok
from trackshield.schema.importer import (
    parse_track_points,
    track_points_from_track,
    track_points_to_json,
)

from conftest import make_line


def test_track_points_from_track(dummy_track: PyTrack) -> None:
    points = track_points_from_track(dummy_track)

    assert len(points) == 122
    assert points[0].latitude == pytest.approx(48.1351)
    assert points[0].longitude == pytest.approx(11.5820)
    assert points[0].elevation == pytest.approx(520.0)
    assert points[0].timestamp is not None
    assert points[-1].latitude == pytest.approx(48.1351 + 121 * 0.0015)


def test_parse_track_points_from_stored_json() -> None:
    track = make_line(5)

    assert parse_track_points(track_points_to_json(track)).unwrap() == track
    assert (
        parse_track_points(json.dumps(track_points_to_json(track))).unwrap() == track
    )


def test_parse_track_points_skips_entries_without_coordinates() -> None:
    raw = [
        {"latitude": 1.0, "longitude": 2.0, "heartrate": 100},
        {"latitude": None, "longitude": 2.0},
        {"elevation": 10.0},
        {"latitude": 3.0, "longitude": 4.0, "elevation": 5.0},
    ]

    match parse_track_points(raw):
        case Ok(points):
            assert points == [
                TrackPoint(latitude=1.0, longitude=2.0),
                TrackPoint(latitude=3.0, longitude=4.0, elevation=5.0),
            ]
        case Err(error):
            pytest.fail(error)


def test_parse_track_points_empty() -> None:
    assert parse_track_points(None).unwrap() == []
    assert parse_track_points([]).unwrap() == []


@pytest.mark.parametrize(
    ("raw", "message"),
    [
        ("[1, 2", "not valid JSON"),
        ('{"latitude": 1}', "not an array"),
        ([1, 2], "not an object"),
        ([{"latitude": 95.0, "longitude": 2.0}], "invalid"),
        ([{"latitude": "north", "longitude": 2.0}], "invalid"),
    ],
)
def test_parse_track_points_errors(raw: object, message: str) -> None:
    result = parse_track_points(raw)

    assert isinstance(result, Err)
    assert message in result.error
