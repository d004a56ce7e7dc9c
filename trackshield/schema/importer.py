import json
import logging
from typing import Any

from geo_track_analyzer import Track
from pydantic import ValidationError

from trackshield.geometry import TrackPoint
from trackshield.result import Err, Ok, Result

logger = logging.getLogger(__name__)


def track_points_from_track(track: Track) -> list[TrackPoint]:
    """
    Flatten all segments of a parsed track into one ordered point sequence.
    """
    points = []
    for segment in track.track.segments:
        for point in segment.points:
            points.append(
                TrackPoint(
                    latitude=point.latitude,
                    longitude=point.longitude,
                    elevation=point.elevation,
                    timestamp=point.time,
                )
            )
    return points


def track_points_to_json(points: list[TrackPoint]) -> list[dict[str, Any]]:
    """JSON-compatible form stored in ``Activity.track_points``."""
    return [p.model_dump(mode="json") for p in points]


def parse_track_points(raw: Any) -> Result[list[TrackPoint], str]:
    """
    Validate stored track data.

    Accepts the decoded JSON list or the JSON text. Entries without a latitude
    or longitude are skipped. Anything else that does not form a valid point
    fails the whole track.
    """
    if raw is None:
        return Ok([])

    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            return Err(f"Track data is not valid JSON: {e}")

    if not isinstance(raw, list):
        return Err(f"Track data is not an array but {type(raw).__name__}")

    points = []
    for i, entry in enumerate(raw):
        if not isinstance(entry, dict):
            return Err(f"Track point {i} is not an object")
        if entry.get("latitude") is None or entry.get("longitude") is None:
            continue
        try:
            points.append(TrackPoint.model_validate(entry))
        except ValidationError as e:
            return Err(f"Track point {i} is invalid: {e.error_count()} error(s)")

    return Ok(points)
