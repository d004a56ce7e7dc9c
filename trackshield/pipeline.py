"""
Processing of a single activity: privacy redaction, simplification for
rendering and scheduling of the heatmap update.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Iterable, Sequence

from geo_track_analyzer import Track
from sqlmodel import Session

from trackshield import crud
from trackshield.exceptions import TrackDataError
from trackshield.geometry import TrackPoint
from trackshield.models import Activity, ActivityCreate, PrivacyZone
from trackshield.privacy import MIN_RENDERABLE_POINTS, filter_track
from trackshield.result import Err, Ok
from trackshield.schema.exporter import to_coordinates
from trackshield.schema.importer import parse_track_points, track_points_from_track
from trackshield.simplification import SimplificationResult, simplify_track
from trackshield.tasks import update_heatmap_for_activity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessedTrack:
    # None if the track is not renderable after redaction
    points: list[TrackPoint] | None
    simplification: SimplificationResult[TrackPoint] | None
    original_count: int

    @property
    def coordinates(self) -> list[list[float]] | None:
        if self.points is None:
            return None
        return [list(c) for c in to_coordinates(self.points)]


def process_track(
    points: Sequence[TrackPoint], zones: Iterable[PrivacyZone] | None
) -> ProcessedTrack:
    """Redact and simplify a track. Simplification only sees redacted points."""
    filtered = filter_track(points, zones)
    if filtered is None or len(filtered) < MIN_RENDERABLE_POINTS:
        return ProcessedTrack(
            points=None, simplification=None, original_count=len(points)
        )

    result = simplify_track(filtered)
    return ProcessedTrack(
        points=result.points, simplification=result, original_count=len(points)
    )


def refresh_simplified_track(session: Session, activity_id: uuid.UUID) -> Activity:
    """
    Recompute and store the simplified geometry of an activity with the
    current privacy zones of its owner.
    """
    activity = crud.get_activity(session=session, activity_id=activity_id)

    match parse_track_points(activity.track_points):
        case Ok(points):
            pass
        case Err(error):
            # Stored geometry must always reflect the current zones
            logger.warning(
                "Clearing simplified track of activity %s: %s", activity_id, error
            )
            crud.update_activity_simplified_track(
                session=session, activity=activity, coordinates=None
            )
            raise TrackDataError(f"Activity {activity_id}: {error}")

    zones = crud.get_active_privacy_zones(session=session, user_id=activity.user_id)
    processed = process_track(points, zones)
    if processed.points is None and points:
        logger.info("Activity %s has no renderable geometry", activity_id)

    return crud.update_activity_simplified_track(
        session=session, activity=activity, coordinates=processed.coordinates
    )


def ingest_activity(
    session: Session,
    user_id: uuid.UUID,
    create: ActivityCreate,
    points: Sequence[TrackPoint],
    schedule_heatmap: bool = True,
) -> Activity:
    activity = crud.create_activity(
        session=session, user_id=user_id, create=create, points=points
    )
    activity = refresh_simplified_track(session, activity.id)

    if schedule_heatmap and not activity.indoor:
        update_heatmap_for_activity.delay(activity.id)

    return activity


def ingest_track(
    session: Session,
    user_id: uuid.UUID,
    create: ActivityCreate,
    track: Track,
    schedule_heatmap: bool = True,
) -> Activity:
    return ingest_activity(
        session,
        user_id,
        create,
        track_points_from_track(track),
        schedule_heatmap=schedule_heatmap,
    )
