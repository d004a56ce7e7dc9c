from itertools import batched
from uuid import UUID

from sqlalchemy.dialects import postgresql, sqlite
from sqlmodel import Session, col, delete, func, select

from trackshield.geometry import BoundingBox
from trackshield.heatmap.grid import CellCounts
from trackshield.models import HeatmapGridCell, utc_now

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def upsert_cells(
    session: Session,
    user_id: UUID,
    cells: CellCounts,
    batch_size: int = 500,
) -> None:
    """
    Insert new cells with their count or add the count to existing cells.

    Each cell key may appear only once in `cells`.
    """
    dialect = session.get_bind().dialect.name
    insert = _INSERTS.get(dialect)
    if insert is None:
        raise NotImplementedError(f"Upsert is not supported for {dialect}")

    now = utc_now()
    for batch in batched(cells, batch_size):
        stmt = insert(HeatmapGridCell).values(
            [
                {
                    "user_id": user_id,
                    "cell_latitude": latitude,
                    "cell_longitude": longitude,
                    "point_count": count,
                    "last_updated": now,
                }
                for latitude, longitude, count in batch
            ]
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "cell_latitude", "cell_longitude"],
            set_={
                "point_count": col(HeatmapGridCell.point_count)
                + stmt.excluded.point_count,
                "last_updated": stmt.excluded.last_updated,
            },
        )
        session.exec(stmt)  # type: ignore


def delete_cells_for_user(session: Session, user_id: UUID) -> int:
    result = session.exec(
        delete(HeatmapGridCell).where(col(HeatmapGridCell.user_id) == user_id)  # type: ignore
    )
    return result.rowcount


def get_cells(
    session: Session, user_id: UUID, bbox: BoundingBox | None = None
) -> CellCounts:
    stmt = select(
        HeatmapGridCell.cell_latitude,
        HeatmapGridCell.cell_longitude,
        HeatmapGridCell.point_count,
    ).where(HeatmapGridCell.user_id == user_id)
    if bbox is not None:
        stmt = stmt.where(
            col(HeatmapGridCell.cell_latitude).between(
                bbox.min_latitude, bbox.max_latitude
            ),
            col(HeatmapGridCell.cell_longitude).between(
                bbox.min_longitude, bbox.max_longitude
            ),
        )
    return [(lat, lon, count) for lat, lon, count in session.exec(stmt).all()]


def get_max_point_count(session: Session, user_id: UUID) -> int | None:
    return session.exec(
        select(func.max(HeatmapGridCell.point_count)).where(
            HeatmapGridCell.user_id == user_id
        )
    ).one()


def count_cells_for_user(session: Session, user_id: UUID) -> int:
    return session.exec(
        select(func.count()).where(HeatmapGridCell.user_id == user_id)
    ).one()
