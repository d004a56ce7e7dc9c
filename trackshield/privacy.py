"""
Privacy zone redaction of GPS tracks.

Points within any active privacy zone of the track owner are removed before a
track is rendered, exported or aggregated. Zone centers themselves are never
shown; :func:`display_center` provides a stable, shifted stand-in.
"""

import json
import logging
import math
import random
from typing import Iterable, Sequence
from uuid import UUID

import numpy as np

from trackshield.exceptions import InvalidPrivacyZoneError
from trackshield.geometry import (
    Latitude,
    Longitude,
    TrackPoint,
    haversine_distance,
    haversine_distances,
    offset_coordinate,
)
from trackshield.models import PrivacyZone

logger = logging.getLogger(__name__)

MIN_RENDERABLE_POINTS = 2

DISPLAY_OFFSET_MIN = 0.10
DISPLAY_OFFSET_SPAN = 0.05

_UINT64_MASK = (1 << 64) - 1


def active_zones(zones: Iterable[PrivacyZone] | None) -> list[PrivacyZone]:
    if not zones:
        return []
    return [z for z in zones if z.is_active]


def is_point_in_any_zone(
    latitude: float, longitude: float, zones: Iterable[PrivacyZone]
) -> bool:
    for zone in active_zones(zones):
        distance = haversine_distance(
            latitude, longitude, zone.center_latitude, zone.center_longitude
        )
        if distance <= zone.radius_meters:
            return True
    return False


def _inside_any_zone_mask(
    latitudes: np.ndarray, longitudes: np.ndarray, zones: list[PrivacyZone]
) -> np.ndarray:
    mask = np.zeros(latitudes.shape, dtype=bool)
    for zone in zones:
        distances = haversine_distances(
            latitudes, longitudes, zone.center_latitude, zone.center_longitude
        )
        mask |= distances <= zone.radius_meters
    return mask


def points_outside_zones(
    points: Sequence[TrackPoint], zones: Iterable[PrivacyZone] | None
) -> list[TrackPoint]:
    """
    Drop all points inside any active zone. Order and the surviving point
    objects are preserved.
    """
    _zones = active_zones(zones)
    if not _zones or not points:
        return list(points)

    latitudes = np.fromiter((p.latitude for p in points), dtype=np.float64)
    longitudes = np.fromiter((p.longitude for p in points), dtype=np.float64)
    inside = _inside_any_zone_mask(latitudes, longitudes, _zones)

    logger.debug(
        "Privacy filter: %d zones active, %d/%d points filtered out",
        len(_zones),
        int(inside.sum()),
        len(points),
    )
    return [p for p, drop in zip(points, inside) if not drop]


def filter_track(
    track: Sequence[TrackPoint], zones: Iterable[PrivacyZone] | None
) -> list[TrackPoint] | None:
    """
    Remove all points of `track` that fall within an active privacy zone.

    Returns the track unchanged if no zone is active and ``None`` if fewer than
    two points survive, since such a track can not be drawn as a line.
    """
    _zones = active_zones(zones)
    if not _zones:
        return list(track)

    filtered = points_outside_zones(track, _zones)
    if len(filtered) < MIN_RENDERABLE_POINTS:
        logger.info(
            "Track completely filtered by privacy zones (%d of %d points remain)",
            len(filtered),
            len(track),
        )
        return None

    return filtered


def filter_track_points_json(
    raw: str | None, zones: Iterable[PrivacyZone] | None
) -> str | None:
    """
    JSON text variant of :func:`filter_track` for stored track point arrays.

    Malformed input is returned as is. Over-redacting the owner's own view is
    worse than passing through data that could not be read.
    """
    _zones = active_zones(zones)
    if raw is None or not _zones:
        return raw

    try:
        root = json.loads(raw)
        if not isinstance(root, list):
            logger.warning("Track points JSON is not an array")
            return raw

        kept = []
        for node in root:
            if not isinstance(node, dict):
                continue
            if node.get("latitude") is None or node.get("longitude") is None:
                continue
            latitude = float(node["latitude"])
            longitude = float(node["longitude"])
            if not is_point_in_any_zone(latitude, longitude, _zones):
                kept.append(node)
    except (ValueError, TypeError):
        logger.exception("Error filtering track points JSON")
        return raw

    if len(kept) < MIN_RENDERABLE_POINTS:
        logger.debug(
            "Track points completely filtered by privacy zones (or <2 points remain)"
        )
        return None

    return json.dumps(kept)


def display_seed(activity_id: UUID) -> int:
    """XOR of the two 64 bit halves of the id. Changing this moves every
    previously shown zone center."""
    value = activity_id.int
    return (value >> 64) ^ (value & _UINT64_MASK)


def display_center(zone: PrivacyZone, activity_id: UUID) -> tuple[Latitude, Longitude]:
    """
    Shifted center of `zone` to show alongside the track of `activity_id`.

    The point lies 10-15% of the radius away from the true center in a random
    direction. Randomness is seeded by the activity so the same activity always
    shows the same point.
    """
    if zone.radius_meters <= 0:
        raise InvalidPrivacyZoneError(
            f"Privacy zone {zone.id} has a non-positive radius: {zone.radius_meters}"
        )

    rng = random.Random(display_seed(activity_id))

    offset_fraction = DISPLAY_OFFSET_MIN + rng.random() * DISPLAY_OFFSET_SPAN
    bearing = rng.random() * 2 * math.pi

    return offset_coordinate(
        zone.center_latitude,
        zone.center_longitude,
        zone.radius_meters * offset_fraction,
        bearing,
    )
