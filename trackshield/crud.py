import uuid
from typing import Any, Sequence

from pydantic import ValidationError
from sqlmodel import Session, col, select

from trackshield.exceptions import ActivityNotFoundError
from trackshield.geometry import TrackPoint
from trackshield.models import Activity, ActivityCreate, PrivacyZone, PrivacyZoneCreate
from trackshield.privacy import is_point_in_any_zone
from trackshield.result import Err, Ok, Result
from trackshield.schema.importer import track_points_to_json


def create_activity(
    *,
    session: Session,
    user_id: uuid.UUID,
    create: ActivityCreate,
    points: Sequence[TrackPoint] | None = None,
) -> Activity:
    track_points = None if points is None else track_points_to_json(list(points))
    db_obj = Activity.model_validate(
        create, update={"user_id": user_id, "track_points": track_points}
    )
    session.add(db_obj)
    session.commit()
    session.refresh(db_obj)
    return db_obj


def get_activity(*, session: Session, activity_id: uuid.UUID) -> Activity:
    activity = session.get(Activity, activity_id)
    if activity is None:
        raise ActivityNotFoundError(f"Activity {activity_id} not found")
    return activity


def get_user_activity_ids(*, session: Session, user_id: uuid.UUID) -> list[uuid.UUID]:
    stmt = (
        select(Activity.id)
        .where(Activity.user_id == user_id)
        .order_by(col(Activity.start))
    )
    return list(session.exec(stmt).all())


def get_user_ids_with_activities(*, session: Session) -> list[uuid.UUID]:
    return list(session.exec(select(Activity.user_id).distinct()).all())


def update_activity_simplified_track(
    *,
    session: Session,
    activity: Activity,
    coordinates: list[list[float]] | None,
) -> Activity:
    activity.simplified_track = coordinates
    session.add(activity)
    session.commit()
    session.refresh(activity)
    return activity


def get_privacy_zones(*, session: Session, user_id: uuid.UUID) -> list[PrivacyZone]:
    stmt = (
        select(PrivacyZone)
        .where(PrivacyZone.user_id == user_id)
        .order_by(col(PrivacyZone.created_at))
    )
    return list(session.exec(stmt).all())


def get_active_privacy_zones(
    *, session: Session, user_id: uuid.UUID
) -> list[PrivacyZone]:
    stmt = select(PrivacyZone).where(
        PrivacyZone.user_id == user_id,
        col(PrivacyZone.is_active).is_(True),
    )
    return list(session.exec(stmt).all())


def create_privacy_zone(
    *,
    session: Session,
    user_id: uuid.UUID,
    data: PrivacyZoneCreate | dict[str, Any],
) -> Result[PrivacyZone, str]:
    """
    Validate and store a new zone. Invalid input is returned as `Err` with a
    readable message instead of raising.
    """
    try:
        create = PrivacyZoneCreate.model_validate(
            data.model_dump() if isinstance(data, PrivacyZoneCreate) else data
        )
    except ValidationError as e:
        fields = ", ".join(".".join(map(str, err["loc"])) for err in e.errors())
        return Err(f"Invalid privacy zone ({fields})")

    db_obj = PrivacyZone.model_validate(create, update={"user_id": user_id})
    session.add(db_obj)
    session.commit()
    session.refresh(db_obj)
    return Ok(db_obj)


def set_privacy_zone_active(
    *,
    session: Session,
    user_id: uuid.UUID,
    zone_id: uuid.UUID,
    is_active: bool,
) -> Result[PrivacyZone, str]:
    zone = session.get(PrivacyZone, zone_id)
    if zone is None or zone.user_id != user_id:
        return Err(f"Privacy zone {zone_id} not found")

    zone.is_active = is_active
    session.add(zone)
    session.commit()
    session.refresh(zone)
    return Ok(zone)


def is_point_in_privacy_zone(
    *,
    session: Session,
    user_id: uuid.UUID,
    latitude: float,
    longitude: float,
) -> bool:
    zones = get_active_privacy_zones(session=session, user_id=user_id)
    return is_point_in_any_zone(latitude, longitude, zones)
