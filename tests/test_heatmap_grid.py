import numpy as np
import pytest

from trackshield.geometry import TrackPoint
from trackshield.heatmap.grid import (
    GRID_SIZE,
    MAX_QUERY_CELLS,
    aggregate_cells,
    count_cells,
    grid_size_for_zoom,
    sample_points,
    snap_array,
    snap_to_grid,
)


def test_snap_to_grid() -> None:
    assert snap_to_grid(52.52001) == 52.52005
    assert snap_to_grid(13.40509) == 13.40505
    assert snap_to_grid(-0.00001) == -0.00005
    assert snap_to_grid(52.5234, 0.01) == 52.525


@pytest.mark.parametrize("grid_size", [0.0001, 0.001, 0.01])
def test_snap_is_idempotent(grid_size: float) -> None:
    values = np.random.default_rng(1).uniform(-90, 90, 1000)

    snapped = snap_array(values, grid_size)

    assert np.array_equal(snap_array(snapped, grid_size), snapped)
    assert np.all(np.abs(snapped - values) <= grid_size / 2 + 1e-9)


def test_snap_scalar_matches_array() -> None:
    values = [52.52001, 13.40509, -33.86881, 151.20929]

    assert [snap_to_grid(v) for v in values] == snap_array(np.array(values)).tolist()


@pytest.mark.parametrize(
    ("zoom", "expected"),
    [
        (None, 0.0001),
        (1, 0.01),
        (8, 0.01),
        (9, 0.001),
        (12, 0.001),
        (13, 0.0001),
        (18, 0.0001),
    ],
)
def test_grid_size_for_zoom(zoom: int | None, expected: float) -> None:
    assert grid_size_for_zoom(zoom) == expected


def test_sample_points() -> None:
    points = list(range(7))

    assert sample_points(points) == [0, 2, 4, 6]
    assert sample_points(points, 3) == [0, 3, 6]
    assert sample_points([]) == []


def test_count_cells() -> None:
    points = [
        TrackPoint(latitude=52.52001, longitude=13.40501),
        TrackPoint(latitude=52.52009, longitude=13.40509),
        TrackPoint(latitude=52.52011, longitude=13.40501),
    ]

    cells = count_cells(points, GRID_SIZE)

    assert sorted(cells) == [(52.52005, 13.40505, 2), (52.52015, 13.40505, 1)]
    assert count_cells([]) == []


def test_aggregate_cells_merges_into_coarse_grid() -> None:
    cells = [
        (52.52005, 13.40505, 2),
        (52.52015, 13.40505, 1),
        (52.52095, 13.40995, 4),
        (52.53005, 13.40505, 1),
    ]

    result = aggregate_cells(cells, 0.001)

    assert [(c.latitude, c.longitude, c.point_count) for c in result] == [
        (52.5205, 13.4095, 4),
        (52.5205, 13.4055, 3),
        (52.5305, 13.4055, 1),
    ]
    assert sum(c.point_count for c in aggregate_cells(cells, 0.01)) == 8


def test_aggregate_cells_on_fine_grid_keeps_cells() -> None:
    cells = [(52.52005, 13.40505, 2), (52.52015, 13.40505, 5)]

    result = aggregate_cells(cells, GRID_SIZE)

    assert [(c.latitude, c.longitude, c.point_count) for c in result] == [
        (52.52015, 13.40505, 5),
        (52.52005, 13.40505, 2),
    ]
    assert aggregate_cells([], GRID_SIZE) == []


def test_aggregate_cells_is_limited() -> None:
    cells = [
        (round(i * GRID_SIZE + GRID_SIZE / 2, 9), 0.00005, 1 if i else 10)
        for i in range(MAX_QUERY_CELLS + 5)
    ]

    result = aggregate_cells(cells, GRID_SIZE)

    assert len(result) == MAX_QUERY_CELLS
    assert result[0].point_count == 10
