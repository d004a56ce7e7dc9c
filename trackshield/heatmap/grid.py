"""
Grid snapping and cell counting for the heatmap.

Cells are identified by their center coordinate. Snapping is done with numpy
for scalars and arrays alike so that every code path yields bit-identical
cell keys.
"""

from typing import Iterable, Sequence, TypeVar

import numpy as np

from trackshield.geometry import Coordinate
from trackshield.models import HeatmapCell

# ~11 m at the equator
GRID_SIZE = 0.0001
SAMPLING_RATE = 2
# Decimals kept for cell centers, removes float noise from the key
CELL_PRECISION = 9
MAX_QUERY_CELLS = 10_000

# (max zoom, grid size) in ascending zoom order
ZOOM_GRID_SIZES: tuple[tuple[int, float], ...] = (
    (8, 0.01),  # world / continent, ~1.1 km
    (12, 0.001),  # city, ~111 m
)

CellCounts = list[tuple[float, float, int]]  # (latitude, longitude, count)

C = TypeVar("C", bound=Coordinate)


def grid_size_for_zoom(zoom: int | None) -> float:
    if zoom is None:
        return GRID_SIZE
    for max_zoom, grid_size in ZOOM_GRID_SIZES:
        if zoom <= max_zoom:
            return grid_size
    return GRID_SIZE


def snap_array(values: np.ndarray, grid_size: float = GRID_SIZE) -> np.ndarray:
    return np.round(
        np.floor(values / grid_size) * grid_size + grid_size / 2, CELL_PRECISION
    )


def snap_to_grid(value: float, grid_size: float = GRID_SIZE) -> float:
    """Center of the grid cell containing `value`."""
    return float(snap_array(np.array([value], dtype=np.float64), grid_size)[0])


def sample_points(points: Sequence[C], rate: int = SAMPLING_RATE) -> list[C]:
    """Every `rate`-th point, starting with the first."""
    return list(points[::rate])


def count_cells(
    points: Sequence[Coordinate], grid_size: float = GRID_SIZE
) -> CellCounts:
    if not points:
        return []
    latitudes = np.fromiter((p.latitude for p in points), dtype=np.float64)
    longitudes = np.fromiter((p.longitude for p in points), dtype=np.float64)
    return _group(
        snap_array(latitudes, grid_size),
        snap_array(longitudes, grid_size),
        np.ones(len(points), dtype=np.int64),
    )


def aggregate_cells(
    cells: Iterable[tuple[float, float, int]], grid_size: float
) -> list[HeatmapCell]:
    """
    Sum stored cells into cells of `grid_size`. The result is ordered by count,
    highest first.
    """
    data = np.array(list(cells), dtype=np.float64).reshape(-1, 3)
    if len(data) == 0:
        return []

    grouped = _group(
        snap_array(data[:, 0], grid_size),
        snap_array(data[:, 1], grid_size),
        data[:, 2].astype(np.int64),
    )
    grouped.sort(key=lambda c: (-c[2], c[0], c[1]))
    return [
        HeatmapCell(latitude=lat, longitude=lon, point_count=count)
        for lat, lon, count in grouped[:MAX_QUERY_CELLS]
    ]


def _group(
    latitudes: np.ndarray, longitudes: np.ndarray, counts: np.ndarray
) -> CellCounts:
    keys, inverse = np.unique(
        np.column_stack((latitudes, longitudes)), axis=0, return_inverse=True
    )
    totals = np.bincount(inverse.ravel(), weights=counts, minlength=len(keys))
    return [
        (float(lat), float(lon), int(total))
        for (lat, lon), total in zip(keys, totals)
    ]
