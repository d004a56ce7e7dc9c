import logging
from typing import Iterable
from uuid import UUID

from sqlmodel import Session, col, select

from trackshield.core.timing import log_timing
from trackshield.crud import get_active_privacy_zones, get_user_ids_with_activities
from trackshield.geometry import BoundingBox, TrackPoint
from trackshield.heatmap import crud
from trackshield.heatmap.grid import (
    GRID_SIZE,
    aggregate_cells,
    count_cells,
    grid_size_for_zoom,
    sample_points,
)
from trackshield.heatmap.locks import user_lock
from trackshield.models import Activity, HeatmapCell, PrivacyZone
from trackshield.privacy import points_outside_zones
from trackshield.result import Err, Ok
from trackshield.schema.importer import parse_track_points

logger = logging.getLogger(__name__)


def extract_points(
    activity: Activity, zones: list[PrivacyZone]
) -> list[TrackPoint] | None:
    """
    Track points of `activity` outside of `zones`, or None if the stored data
    can not be read.
    """
    match parse_track_points(activity.track_points):
        case Ok(points):
            pass
        case Err(error):
            logger.error(
                "Could not read track points of activity %s: %s", activity.id, error
            )
            return None

    return points_outside_zones(points, zones)


@log_timing
def update_for_activity(session: Session, activity_id: UUID) -> int:
    """
    Add the sampled, privacy filtered points of one activity to the grid of its
    owner. Returns the number of points that were counted.
    """
    activity = session.get(Activity, activity_id)
    if activity is None:
        logger.error("Activity not found: %s", activity_id)
        return 0
    if activity.indoor:
        logger.debug("Skipping indoor activity %s", activity_id)
        return 0

    user_id = activity.user_id
    zones = get_active_privacy_zones(session=session, user_id=user_id)
    points = extract_points(activity, zones)
    if not points:
        return 0

    sampled = sample_points(points)
    cells = count_cells(sampled, GRID_SIZE)

    with user_lock(session, user_id):
        try:
            crud.upsert_cells(session, user_id, cells)
            session.commit()
        except Exception:
            session.rollback()
            raise

    logger.info(
        "Added %d points in %d cells of activity %s to heatmap of user %s",
        len(sampled),
        len(cells),
        activity_id,
        user_id,
    )
    return len(sampled)


def update_for_activities(
    session: Session, activity_ids: Iterable[UUID]
) -> dict[UUID, int]:
    results: dict[UUID, int] = {}
    for activity_id in activity_ids:
        try:
            results[activity_id] = update_for_activity(session, activity_id)
        except Exception:
            logger.exception("Heatmap update failed for activity %s", activity_id)
            results[activity_id] = 0
    return results


@log_timing
def recalculate_for_user(session: Session, user_id: UUID) -> int:
    """
    Rebuild the grid of a user from all of their activities.

    Deleting the old cells and writing the new ones happens in one transaction
    while the user lock is held. Returns the number of cells written.
    """
    with user_lock(session, user_id):
        try:
            deleted = crud.delete_cells_for_user(session, user_id)
            session.flush()
            session.expunge_all()
            logger.debug("Deleted %d cells of user %s", deleted, user_id)

            zones = get_active_privacy_zones(session=session, user_id=user_id)
            activities = session.exec(
                select(Activity).where(
                    Activity.user_id == user_id,
                    col(Activity.indoor).is_(False),
                )
            ).all()

            sampled: list[TrackPoint] = []
            for activity in activities:
                points = extract_points(activity, zones)
                if points:
                    sampled.extend(sample_points(points))

            cells = count_cells(sampled, GRID_SIZE)
            crud.upsert_cells(session, user_id, cells)
            session.commit()
        except Exception:
            session.rollback()
            raise

    logger.info(
        "Recalculated heatmap of user %s: %d activities, %d cells",
        user_id,
        len(activities),
        len(cells),
    )
    return len(cells)


def recalculate_all(session: Session) -> tuple[int, int]:
    """Rebuild the grid of every user with activities. Returns (success, errors)."""
    success, errors = 0, 0
    for user_id in get_user_ids_with_activities(session=session):
        try:
            recalculate_for_user(session, user_id)
            success += 1
        except Exception:
            logger.exception("Heatmap recalculation failed for user %s", user_id)
            errors += 1

    logger.info("Heatmap recalculation done: %d users, %d errors", success, errors)
    return success, errors


def query(
    session: Session,
    user_id: UUID,
    bbox: BoundingBox | None = None,
    zoom: int | None = None,
) -> list[HeatmapCell]:
    """
    Cells of a user for display, merged into the grid matching `zoom`. Only
    stored cells with their center inside `bbox` are considered.
    """
    cells = crud.get_cells(session, user_id, bbox)
    return aggregate_cells(cells, grid_size_for_zoom(zoom))


def max_point_count(session: Session, user_id: UUID) -> int:
    return crud.get_max_point_count(session, user_id) or 1
