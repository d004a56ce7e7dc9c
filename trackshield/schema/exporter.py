from typing import Sequence
from uuid import UUID

from trackshield.geometry import TrackPoint
from trackshield.models import Activity, HeatmapCell
from trackshield.schema.geojson import (
    Coordinates,
    HeatmapFeature,
    HeatmapFeatureCollection,
    HeatmapProperties,
    LineFeature,
    LineProperties,
    LineStringGeometry,
    PointGeometry,
)
from trackshield.simplification import SimplificationResult


def to_coordinates(points: Sequence[TrackPoint]) -> list[Coordinates]:
    return [
        (p.longitude, p.latitude)
        if p.elevation is None
        else (p.longitude, p.latitude, p.elevation)
        for p in points
    ]


def track_to_feature(
    points: Sequence[TrackPoint] | None,
    activity_id: UUID | None = None,
    simplification: SimplificationResult[TrackPoint] | None = None,
) -> LineFeature | None:
    """
    LineString feature of `points`. Returns None for tracks that can not be
    drawn, i.e. with less than two points.
    """
    if points is None or len(points) < 2:
        return None

    times = [p.timestamp for p in points]
    return LineFeature(
        geometry=LineStringGeometry(coordinates=to_coordinates(points)),
        properties=LineProperties(
            activity_id=None if activity_id is None else str(activity_id),
            coord_times=times if any(t is not None for t in times) else None,
            epsilon=None if simplification is None else simplification.epsilon,
            original_point_count=(
                None if simplification is None else simplification.original_count
            ),
        ),
    )


def simplified_track_feature(activity: Activity) -> LineFeature | None:
    """Feature of the stored simplified geometry of an activity."""
    if not activity.simplified_track or len(activity.simplified_track) < 2:
        return None

    coordinates: list[Coordinates] = [
        (c[0], c[1]) if len(c) == 2 else (c[0], c[1], c[2])
        for c in activity.simplified_track
    ]
    return LineFeature(
        geometry=LineStringGeometry(coordinates=coordinates),
        properties=LineProperties(activity_id=str(activity.id)),
    )


def heatmap_feature_collection(
    cells: Sequence[HeatmapCell], max_point_count: int = 1
) -> HeatmapFeatureCollection:
    return HeatmapFeatureCollection(
        features=[
            HeatmapFeature(
                geometry=PointGeometry(coordinates=(c.longitude, c.latitude)),
                properties=HeatmapProperties(intensity=c.point_count),
            )
            for c in cells
        ],
        max_intensity=max(max_point_count, 1),
    )
