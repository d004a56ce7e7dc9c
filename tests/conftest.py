import math
import os
import tempfile
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Generator
from uuid import UUID

import pytest
from geo_track_analyzer import PyTrack
from sqlmodel import Session, SQLModel, col, delete

from trackshield.geometry import TrackPoint


# This runs right after cmd arg parsing but before the test modules are
# imported, so the settings pick up the environment set here
def pytest_configure(config) -> None:
    os.environ["ENVIRONMENT"] = "testing"
    db_dir = Path(tempfile.mkdtemp(prefix="trackshield-"))
    os.environ["DATABASE_URL"] = f"sqlite:///{db_dir / 'test.db'}"


@pytest.fixture(scope="session")
def engine():  # noqa: ANN201
    from trackshield.core.db import get_engine, init_db

    engine = get_engine(echo=False)
    SQLModel.metadata.drop_all(engine)
    init_db(engine)
    return engine


@pytest.fixture(scope="session")
def db(engine) -> Generator[Session, Any, Any]:  # noqa: ANN001
    with Session(engine) as session:
        yield session


@pytest.fixture
def temp_user_id(engine) -> Generator[UUID, Any, Any]:  # noqa: ANN001
    from trackshield.models import Activity, HeatmapGridCell, PrivacyZone

    user_id = uuid.uuid4()
    yield user_id

    with Session(engine) as session:
        for model in (HeatmapGridCell, PrivacyZone, Activity):
            session.exec(delete(model).where(col(model.user_id) == user_id))  # type: ignore
        session.commit()


@pytest.fixture
def create_activity(db: Session) -> Callable[..., Any]:
    """Stores an activity with the given points and returns it."""
    from trackshield import crud
    from trackshield.models import ActivityCreate

    def _create(
        user_id: UUID,
        points: list[TrackPoint] | None,
        indoor: bool = False,
        name: str = "Test Activity",
    ) -> Any:
        return crud.create_activity(
            session=db,
            user_id=user_id,
            create=ActivityCreate(
                name=name,
                start=datetime(2024, 1, 15, 10, tzinfo=timezone.utc),
                indoor=indoor,
            ),
            points=points,
        )

    return _create


@pytest.fixture
def celery_eager(monkeypatch) -> None:
    """
    Run Celery tasks synchronously for the duration of a single test by
    patching the configuration of the existing app object.
    """
    from trackshield.celery_app import celery as celery_app_instance

    monkeypatch.setattr(celery_app_instance.conf, "task_always_eager", True)
    monkeypatch.setattr(celery_app_instance.conf, "task_eager_propagates", True)


@pytest.fixture
def dummy_track() -> PyTrack:
    start_time = datetime(2024, 1, 15, 10, 0, 0)
    # 122 points, one every 30 seconds
    num_points = 122
    points = []
    elevations = []
    times = []
    heartrates = []

    base_lat, base_lon = 48.1351, 11.5820
    for i in range(num_points):
        points.append((base_lat + i * 0.0015, base_lon + i * 0.0015))
        elevations.append(520.0 + (i % 20) * 2.0 + (i // 40) * 10.0)
        times.append(start_time + timedelta(seconds=i * 30))
        heartrates.append(120 + (i % 30) + (i // 60) * 5)

    track = PyTrack(
        points=points,
        elevations=elevations,
        times=times,
        extensions={"heartrate": heartrates},
    )
    return track


def make_line(
    n_points: int,
    start: tuple[float, float] = (52.5, 13.4),
    step: tuple[float, float] = (0.0, 0.0001),
) -> list[TrackPoint]:
    return [
        TrackPoint(
            latitude=start[0] + i * step[0],
            longitude=start[1] + i * step[1],
            timestamp=datetime(2024, 1, 15, 10, tzinfo=timezone.utc)
            + timedelta(seconds=i),
        )
        for i in range(n_points)
    ]


def make_circle(
    n_points: int, radius: float, center: tuple[float, float] = (0.0, 0.0)
) -> list[TrackPoint]:
    """Circle in degree space, radius in degrees."""
    return [
        TrackPoint(
            latitude=center[0] + radius * math.sin(2 * math.pi * i / n_points),
            longitude=center[1] + radius * math.cos(2 * math.pi * i / n_points),
        )
        for i in range(n_points)
    ]
