"""
Geometry primitives shared by the redaction, simplification and heatmap stages.

Coordinates are WGS84 degrees. Distances on the sphere are in meters, planar
distances (used by the simplifier) are in degrees of (longitude, latitude).
"""

import math
from datetime import datetime
from typing import Protocol, Self, Sequence

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, model_validator

EARTH_RADIUS_METERS = 6_371_000.0
# Approximation at the equator; used to turn meter offsets into degrees
METERS_PER_DEGREE = 111_320.0

Latitude = float
Longitude = float


class Coordinate(Protocol):
    @property
    def latitude(self) -> float: ...

    @property
    def longitude(self) -> float: ...


class TrackPoint(BaseModel):
    """A single point of a recorded track as produced by the file parser."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    elevation: float | None = None
    timestamp: datetime | None = None


class BoundingBox(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_longitude: float = Field(ge=-180, le=180)
    min_latitude: float = Field(ge=-90, le=90)
    max_longitude: float = Field(ge=-180, le=180)
    max_latitude: float = Field(ge=-90, le=90)

    @model_validator(mode="after")
    def validate_order(self) -> Self:
        if self.min_latitude > self.max_latitude:
            raise ValueError("min_latitude must not be larger than max_latitude")
        if self.min_longitude > self.max_longitude:
            raise ValueError("min_longitude must not be larger than max_longitude")
        return self

    def contains(self, latitude: float, longitude: float) -> bool:
        return (
            self.min_latitude <= latitude <= self.max_latitude
            and self.min_longitude <= longitude <= self.max_longitude
        )


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates in meters."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_METERS * c


def haversine_distances(
    latitudes: np.ndarray, longitudes: np.ndarray, lat: float, lon: float
) -> np.ndarray:
    """Vectorized :func:`haversine_distance` of many points to one reference."""
    d_lat = np.radians(lat - latitudes)
    d_lon = np.radians(lon - longitudes)

    a = (
        np.sin(d_lat / 2) ** 2
        + np.cos(np.radians(latitudes))
        * math.cos(math.radians(lat))
        * np.sin(d_lon / 2) ** 2
    )
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return EARTH_RADIUS_METERS * c


def perpendicular_distance(
    point: Coordinate, line_start: Coordinate, line_end: Coordinate
) -> float:
    """
    Planar distance in degrees from `point` to the segment between `line_start`
    and `line_end`, computed in (longitude, latitude) space.

    The projection onto the line is clamped to the segment, so points beyond
    the ends are measured to the nearest endpoint.
    """
    return float(
        segment_distances(
            np.array([[point.longitude, point.latitude]], dtype=np.float64),
            (line_start.longitude, line_start.latitude),
            (line_end.longitude, line_end.latitude),
        )[0]
    )


def segment_distances(
    xy: np.ndarray, start: tuple[float, float], end: tuple[float, float]
) -> np.ndarray:
    """Vectorized point-to-segment distance for an (n, 2) array of (x, y)."""
    x1, y1 = start
    x2, y2 = end

    a = xy[:, 0] - x1
    b = xy[:, 1] - y1
    c = x2 - x1
    d = y2 - y1

    len_sq = c * c + d * d
    if len_sq == 0:
        return np.sqrt(a * a + b * b)

    param = np.clip((a * c + b * d) / len_sq, 0.0, 1.0)

    dx = xy[:, 0] - (x1 + param * c)
    dy = xy[:, 1] - (y1 + param * d)
    return np.sqrt(dx * dx + dy * dy)


def to_xy_array(points: Sequence[Coordinate]) -> np.ndarray:
    """(n, 2) float array of (longitude, latitude) pairs."""
    if not points:
        return np.empty((0, 2), dtype=np.float64)
    return np.array([(p.longitude, p.latitude) for p in points], dtype=np.float64)


def offset_coordinate(
    latitude: float, longitude: float, distance_meters: float, bearing_rad: float
) -> tuple[Latitude, Longitude]:
    """
    Move a coordinate by `distance_meters` along `bearing_rad` using the flat
    earth approximation of :data:`METERS_PER_DEGREE`. The longitude offset is
    stretched by 1 / cos(latitude) of the origin. The result is clamped to the
    poles and the longitude is wrapped into [-180, 180).
    """
    offset_degrees = distance_meters / METERS_PER_DEGREE
    new_latitude = latitude + offset_degrees * math.sin(bearing_rad)
    new_longitude = longitude + (
        offset_degrees * math.cos(bearing_rad) / math.cos(math.radians(latitude))
    )
    new_latitude = min(90.0, max(-90.0, new_latitude))
    new_longitude = (new_longitude + 180.0) % 360.0 - 180.0
    return new_latitude, new_longitude
