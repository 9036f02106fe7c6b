"""
Grid-indexed point set for sub-linear range search.

Points are quantized onto a q^k grid over canonical space and physically
reordered by grid cell (lexicographic over the per-dimension cell indices).
A flat index of length q^k then maps every cell's linear offset to the first
position in the reordered array whose cell offset is at or above it, so each
cell, and each run of cells along the last dimension, is one contiguous slice.
"""

import itertools
import logging
import math
from typing import List, Sequence

import numpy as np

from gridcluster.core.bound import bounds_min, bounds_span
from gridcluster.core.point_set import (
    PointLike,
    PointSet,
    as_vector,
    squared_distances,
)
from gridcluster.core.vector import Vector
from gridcluster.utils.error_handling import ConfigurationError, check_dimensions

logger = logging.getLogger(__name__)

# offset returned for a grid coordinate outside [0, q) in any dimension
OUT_OF_RANGE = -1

# the flat index holds q ** k offsets, and numpy caps array dimensions at 32
MAX_INDEX_CELLS = 1 << 24
MAX_INDEX_DIMENSIONS = 32


def grid_resolution(n: int, k: int) -> int:
    """Cells per dimension, chosen so expected cell occupancy stays roughly constant."""
    return max(1, int(math.ceil(n ** (1.0 / (k + 1)))))


def index_fits(n: int, k: int) -> bool:
    """Whether a grid index over n points in k dimensions stays within the cell cap."""
    return k <= MAX_INDEX_DIMENSIONS and grid_resolution(n, k) ** k <= MAX_INDEX_CELLS


class SpatialIndex(PointSet):
    """
    PointSet whose points are sorted by grid cell and indexed for range search.

    Indices returned by ``range_search`` and accepted by ``get`` refer to the
    reordered array; ``order[i]`` is the caller's original position of the
    point now stored at ``i``.
    """

    def _set_points(self, points: List[Vector]) -> None:
        super()._set_points(points)

        self.q = grid_resolution(self.n, self.k)
        if not index_fits(self.n, self.k):
            raise ConfigurationError(
                f"A grid index over {self.n} points in {self.k} dimensions needs "
                f"{self.q}^{self.k} cells; use the naive point set instead",
                details={"n": self.n, "k": self.k, "q": self.q, "max_cells": MAX_INDEX_CELLS},
            )
        self._mins = bounds_min(self.bounds)
        self._spans = bounds_span(self.bounds)
        self._shape = (self.q,) * self.k

        # stable sort by cell offset; row-major offsets order cells lexicographically
        grid = self._grid_coordinates(self._matrix)
        grid = np.clip(grid, 0, self.q - 1).astype(np.int64)
        offsets = np.ravel_multi_index(tuple(grid.T), self._shape)
        self.order = np.argsort(offsets, kind="stable")
        self.order.setflags(write=False)

        self._points = [self._points[i] for i in self.order]
        self._matrix = self._matrix[self.order]
        self._matrix.setflags(write=False)
        sorted_offsets = offsets[self.order]

        # empty cells take the start of the next occupied cell, the tail takes n
        index_size = self.q ** self.k
        self.index = np.searchsorted(
            sorted_offsets, np.arange(index_size), side="left"
        )
        self.index.setflags(write=False)

        self.occupied_cell_count = int(np.unique(sorted_offsets).size)
        logger.info(f"Q: {self.q}")
        logger.info(f"occupied cells: {self.occupied_cell_count}")
        logger.info(f"occupancy: {self.n // self.occupied_cell_count}")

    # -------------------------------------------------------------------------
    # Grid mapping
    # -------------------------------------------------------------------------

    def _grid_coordinates(self, coordinates: np.ndarray) -> np.ndarray:
        """Unclamped floor of canonical coordinates scaled by q (as floats)."""
        canonical = (coordinates - self._mins) / self._spans
        return np.floor(canonical * self.q)

    def map_to_grid(self, coordinate: PointLike) -> np.ndarray:
        """Integer grid cell of a coordinate; may fall outside [0, q)."""
        vector = as_vector(coordinate)
        check_dimensions(self.k, vector.k, "map_to_grid")
        return self._grid_coordinates(vector.values).astype(np.int64)

    def map_from_grid(self, grid: Sequence[int]) -> Vector:
        """Coordinate of the lower corner of a grid cell."""
        check_dimensions(self.k, len(grid), "map_from_grid")
        canonical = np.asarray(grid, dtype=np.float64) / self.q
        return Vector.from_array(self._mins + self._spans * canonical)

    def index_offset_from_grid(self, grid: Sequence[int]) -> int:
        """Row-major linear offset of a cell, or OUT_OF_RANGE."""
        offset = 0
        for g in grid:
            if 0 <= g < self.q:
                offset = (offset * self.q) + int(g)
            else:
                return OUT_OF_RANGE
        return offset

    def _cell_end(self, offset: int) -> int:
        next_offset = offset + 1
        return int(self.index[next_offset]) if next_offset < self.index.size else self.n

    def cell_slice(self, grid: Sequence[int]) -> slice:
        """Positions of the points stored in one grid cell."""
        offset = self.index_offset_from_grid(grid)
        if offset == OUT_OF_RANGE:
            return slice(0, 0)
        return slice(int(self.index[offset]), self._cell_end(offset))

    # -------------------------------------------------------------------------
    # Range search
    # -------------------------------------------------------------------------

    def range_search(self, locus: PointLike, radius: float) -> np.ndarray:
        """
        Indices of all points strictly within radius of locus.

        Enumerates only the grid cells overlapping the box
        [locus - radius, locus + radius]; runs of cells along the last
        dimension are contiguous in the sorted array and scanned as one slice.
        """
        values = self._locus_values(locus, radius)
        radius_sq = radius * radius

        lo = self._grid_coordinates(values - radius)
        hi = self._grid_coordinates(values + radius)
        if np.any(hi < 0) or np.any(lo > self.q - 1):
            return np.empty(0, dtype=np.intp)
        lo = np.clip(lo, 0, self.q - 1).astype(np.int64)
        hi = np.clip(hi, 0, self.q - 1).astype(np.int64)

        found = []
        leading = [range(lo[d], hi[d] + 1) for d in range(self.k - 1)]
        for prefix in itertools.product(*leading):
            first = self.index_offset_from_grid(prefix + (lo[-1],))
            last = self.index_offset_from_grid(prefix + (hi[-1],))
            if first == OUT_OF_RANGE or last == OUT_OF_RANGE:
                continue
            start, end = int(self.index[first]), self._cell_end(last)
            if start == end:
                continue
            within = squared_distances(self._matrix[start:end], values) < radius_sq
            found.append(np.flatnonzero(within) + start)

        if not found:
            return np.empty(0, dtype=np.intp)
        return np.concatenate(found)
