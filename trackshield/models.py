import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel
from sqlalchemy import JSON, Column
from sqlmodel import Field, Index, SQLModel, UniqueConstraint

MAX_PRIVACY_ZONE_RADIUS_METERS = 10_000


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ActivityBase(SQLModel):
    name: str = Field(...)
    start: datetime
    indoor: bool = Field(
        default=False,
        description="Indoor activities have no meaningful location and never "
        "contribute to the heatmap",
    )


class ActivityCreate(ActivityBase):
    pass


class Activity(ActivityBase, table=True):
    __tablename__: str = "activities"  # type: ignore

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(nullable=False, index=True)
    created_at: datetime = Field(default_factory=utc_now)

    # Point objects as written by the file parser
    # ({"latitude", "longitude", "elevation", "timestamp"}). Not validated on
    # write, consumers must expect malformed content.
    track_points: list[dict[str, Any]] | None = Field(
        default=None, sa_column=Column(JSON)
    )
    # Privacy-filtered, simplified geometry as (longitude, latitude[, elevation])
    simplified_track: list[list[float]] | None = Field(
        default=None, sa_column=Column(JSON)
    )


class PrivacyZoneBase(SQLModel):
    name: str = Field(max_length=100)
    description: str | None = None

    center_latitude: float = Field(ge=-90, le=90)
    center_longitude: float = Field(ge=-180, le=180)
    radius_meters: int = Field(gt=0, le=MAX_PRIVACY_ZONE_RADIUS_METERS)


class PrivacyZoneCreate(PrivacyZoneBase):
    pass


class PrivacyZone(PrivacyZoneBase, table=True):
    """
    A circular area in which track points of the owner are never shown.

    The stored center is the true center and must not be rendered, see
    :func:`trackshield.privacy.display_center`.
    """

    __tablename__: str = "privacy_zones"  # type: ignore

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(nullable=False)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now)

    __table_args__ = (Index("idx_privacy_zones_user", "user_id", "is_active"),)


class HeatmapGridCell(SQLModel, table=True):
    """
    Number of (sampled) track points of one user inside one fixed grid cell.
    The cell is identified by its center coordinate.
    """

    __tablename__: str = "user_heatmap_grid"  # type: ignore

    id: int | None = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(nullable=False, index=True)
    cell_latitude: float = Field(nullable=False)
    cell_longitude: float = Field(nullable=False)
    point_count: int = Field(default=0, nullable=False)
    last_updated: datetime = Field(default_factory=utc_now)

    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "cell_latitude",
            "cell_longitude",
            name="uix_user_heatmap_grid_cell",
        ),
    )


class HeatmapCell(BaseModel):
    """Aggregated cell returned by heatmap queries."""

    latitude: float
    longitude: float
    point_count: int
