"""
PointSet: the in-memory array of n k-dimensional points plus their bounds.

The naive range search here is an exhaustive O(n) scan. It is the reference
the spatial index must agree with exactly, so both share
``squared_distances`` and the strict ``< radius ** 2`` predicate.
"""

import logging
from typing import List, Sequence, Union

import numpy as np

from gridcluster.core.bound import Bound, bounds_of, resize_bounds
from gridcluster.core.vector import Vector
from gridcluster.utils.error_handling import (
    EmptyInputError,
    check_dimensions,
    check_index,
)

logger = logging.getLogger(__name__)

# bounds are grown by this ratio so no point sits exactly on a bound
DEFAULT_BOUND_SLACK = 1.0 + 1.0e-6

# absolute widening for a dimension in which every point has the same value
DEFAULT_DEGENERATE_PADDING = 0.5

PointLike = Union[Vector, Sequence[float], np.ndarray]


def as_vector(point: PointLike) -> Vector:
    return point if isinstance(point, Vector) else Vector.from_array(point)


def squared_distances(candidates: np.ndarray, locus: np.ndarray) -> np.ndarray:
    """Squared Euclidean distance from each row of candidates to locus."""
    diff = candidates - locus
    return np.einsum("ij,ij->i", diff, diff)


class PointSet:
    """
    Fixed array of n points with k per-dimension bounds.

    Points are immutable after construction, so one PointSet can back any
    number of clustering runs.
    """

    def __init__(
        self,
        points: Sequence[PointLike],
        bound_slack: float = DEFAULT_BOUND_SLACK,
        degenerate_padding: float = DEFAULT_DEGENERATE_PADDING,
    ):
        """
        Args:
            points: Vectors (or plain coordinate sequences) of equal length
            bound_slack: Ratio applied to each bound about its midpoint
            degenerate_padding: Absolute margin for zero-span dimensions

        Raises:
            EmptyInputError: If no points are supplied
            DimensionMismatchError: If points differ in dimensionality
        """
        if len(points) == 0:
            raise EmptyInputError("A point set needs at least one point")

        self.bound_slack = bound_slack
        self.degenerate_padding = degenerate_padding
        self._set_points([as_vector(point) for point in points])

    def _set_points(self, points: List[Vector]) -> None:
        self._points = points
        self.n = len(points)

        self.bounds: List[Bound] = bounds_of(points)
        self.k = len(self.bounds)
        self._matrix = np.vstack([point.values for point in points])
        self._matrix.setflags(write=False)

        # add a little buffer so the contents are strictly enclosed
        resize_bounds(self.bounds, self.bound_slack)
        for bound in self.bounds:
            if bound.span == 0.0:
                bound.pad(self.degenerate_padding)

        logger.info(f"PointSet: n={self.n}, k={self.k}")
        for i, bound in enumerate(self.bounds):
            logger.debug(f"Bounds {i}: ({bound.min}, {bound.max})")

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def points(self) -> List[Vector]:
        return list(self._points)

    @property
    def matrix(self) -> np.ndarray:
        """Read-only (n, k) array of the point coordinates."""
        return self._matrix

    def get(self, i: int) -> Vector:
        check_index(i, self.n)
        return self._points[i]

    def get_points(self, selection: Sequence[int]) -> List[Vector]:
        return [self.get(int(i)) for i in selection]

    def __len__(self) -> int:
        return self.n

    def __getitem__(self, i: int) -> Vector:
        return self.get(i)

    # -------------------------------------------------------------------------
    # Range search
    # -------------------------------------------------------------------------

    def _locus_values(self, locus: PointLike, radius: float) -> np.ndarray:
        if radius < 0:
            raise ValueError(f"Search radius must be non-negative, got {radius}")
        locus = as_vector(locus)
        check_dimensions(self.k, locus.k, "range_search")
        return locus.values

    def range_search(self, locus: PointLike, radius: float) -> np.ndarray:
        """
        Indices of all points strictly within radius of locus.

        Args:
            locus: Search center
            radius: Search radius (compared as squared distance < radius ** 2)

        Returns:
            Ascending array of point indices
        """
        values = self._locus_values(locus, radius)
        within = squared_distances(self._matrix, values) < radius * radius
        return np.flatnonzero(within)
