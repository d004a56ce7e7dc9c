"""
Douglas-Peucker simplification of tracks for map rendering.
"""

import logging
from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

import numpy as np

from trackshield.core.timing import log_timing
from trackshield.geometry import Coordinate, segment_distances, to_xy_array

logger = logging.getLogger(__name__)

# ~11 m at the equator
DEFAULT_EPSILON = 0.0001
MIN_EPSILON = 0.00001

TARGET_POINTS_MIN = 50
TARGET_POINTS_MAX = 200

MAX_ITERATIONS = 10
EPSILON_INCREASE = 1.5
EPSILON_DECREASE = 0.7

P = TypeVar("P", bound=Coordinate)


@dataclass(frozen=True)
class SimplificationResult(Generic[P]):
    points: list[P]
    # None if the input was already small enough
    epsilon: float | None
    iterations: int
    original_count: int


def _douglas_peucker_indices(xy: np.ndarray, epsilon: float) -> np.ndarray:
    n = len(xy)
    if n < 3:
        return np.arange(n)

    keep = np.zeros(n, dtype=bool)
    keep[0] = keep[-1] = True

    # Explicit stack of (first, last) ranges instead of recursion
    stack = [(0, n - 1)]
    while stack:
        first, last = stack.pop()
        if last - first < 2:
            continue

        distances = segment_distances(
            xy[first + 1 : last],
            (xy[first, 0], xy[first, 1]),
            (xy[last, 0], xy[last, 1]),
        )
        i_max = int(np.argmax(distances))
        if distances[i_max] > epsilon:
            split = first + 1 + i_max
            keep[split] = True
            stack.append((split, last))
            stack.append((first, split))

    return np.flatnonzero(keep)


def douglas_peucker(points: Sequence[P], epsilon: float) -> list[P]:
    """
    Simplify `points` so that no removed point is farther than `epsilon`
    (degrees) from the segment that replaces it. First and last point are
    always kept.
    """
    if epsilon < 0:
        raise ValueError(f"epsilon must not be negative, got {epsilon}")
    indices = _douglas_peucker_indices(to_xy_array(points), epsilon)
    return [points[i] for i in indices]


@log_timing
def simplify_track(points: Sequence[P]) -> SimplificationResult[P]:
    """
    Reduce a track to roughly TARGET_POINTS_MIN..TARGET_POINTS_MAX points.

    The tolerance starts at DEFAULT_EPSILON and is scaled up while the result
    is too large and scaled down while it is too small. Both phases share one
    budget of MAX_ITERATIONS. If the band is not reached the last result is
    returned.
    """
    n_points = len(points)
    if n_points <= TARGET_POINTS_MAX:
        logger.debug("Track has %d points, no simplification needed", n_points)
        return SimplificationResult(
            points=list(points), epsilon=None, iterations=0, original_count=n_points
        )

    xy = to_xy_array(points)
    epsilon = DEFAULT_EPSILON
    indices = _douglas_peucker_indices(xy, epsilon)

    iterations = 0
    while len(indices) > TARGET_POINTS_MAX and iterations < MAX_ITERATIONS:
        epsilon *= EPSILON_INCREASE
        indices = _douglas_peucker_indices(xy, epsilon)
        iterations += 1

    while (
        len(indices) < TARGET_POINTS_MIN
        and epsilon > MIN_EPSILON
        and iterations < MAX_ITERATIONS
    ):
        epsilon *= EPSILON_DECREASE
        indices = _douglas_peucker_indices(xy, epsilon)
        iterations += 1

    logger.info(
        "Simplified track from %d to %d points (epsilon: %g, iterations: %d)",
        n_points,
        len(indices),
        epsilon,
        iterations,
    )
    return SimplificationResult(
        points=[points[i] for i in indices],
        epsilon=epsilon,
        iterations=iterations,
        original_count=n_points,
    )


def simplify(points: Sequence[P]) -> list[P]:
    return simplify_track(points).points
