"""
Per-dimension [min, max] intervals and the canonical-space mapping.

A list of k Bounds maps coordinates into [0, 1]^k (canonical space), which is
where the spatial index places its grid.
"""

import math
from typing import List, Sequence

import numpy as np

from gridcluster.core.vector import Vector
from gridcluster.utils.error_handling import EmptyInputError, check_dimensions


class Bound:
    """Closed interval accumulated from a batch of values."""

    __slots__ = ("min", "max")

    def __init__(self, *values: float):
        # unset sentinels; the first accumulated value replaces both
        self.min = math.inf
        self.max = -math.inf
        for value in values:
            self.accumulate(value)

    @property
    def span(self) -> float:
        return self.max - self.min

    @property
    def mid(self) -> float:
        return (self.min + self.max) / 2

    @property
    def is_set(self) -> bool:
        return self.min <= self.max

    def accumulate(self, value: float) -> "Bound":
        value = float(value)
        if value < self.min:
            self.min = value
        if value > self.max:
            self.max = value
        return self

    def resize(self, ratio: float) -> "Bound":
        """Scale the interval about its midpoint."""
        mid = self.mid
        self.min = mid - ((mid - self.min) * ratio)
        self.max = mid + ((self.max - mid) * ratio)
        return self

    def pad(self, margin: float) -> "Bound":
        """Widen both ends by an absolute margin."""
        self.min -= margin
        self.max += margin
        return self

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max

    def map_from_canonical(self, canonical: float) -> float:
        return self.min + ((self.max - self.min) * canonical)

    def map_to_canonical(self, coordinate: float) -> float:
        return (coordinate - self.min) / (self.max - self.min)

    def __repr__(self) -> str:
        return f"Bound({self.min}, {self.max})"


# =============================================================================
# Bound arrays (one Bound per dimension)
# =============================================================================


def bounds_of(vectors: Sequence[Vector]) -> List[Bound]:
    """Tightest per-dimension bounds of a non-empty batch of vectors."""
    if len(vectors) == 0:
        raise EmptyInputError("Cannot compute bounds of zero points")
    k = vectors[0].k
    for vector in vectors:
        check_dimensions(k, vector.k, "bounds")
    matrix = np.vstack([vector.values for vector in vectors])
    return [Bound(matrix[:, i].min(), matrix[:, i].max()) for i in range(k)]


def resize_bounds(bounds: Sequence[Bound], ratio: float) -> None:
    for bound in bounds:
        bound.resize(ratio)


def contains(bounds: Sequence[Bound], vector: Vector) -> bool:
    check_dimensions(len(bounds), vector.k, "contains")
    return all(bound.contains(value) for bound, value in zip(bounds, vector))


def bounds_min(bounds: Sequence[Bound]) -> np.ndarray:
    return np.array([bound.min for bound in bounds], dtype=np.float64)


def bounds_span(bounds: Sequence[Bound]) -> np.ndarray:
    return np.array([bound.span for bound in bounds], dtype=np.float64)


def map_to_canonical(bounds: Sequence[Bound], vector: Vector) -> Vector:
    check_dimensions(len(bounds), vector.k, "map_to_canonical")
    return Vector.from_array(
        [bound.map_to_canonical(value) for bound, value in zip(bounds, vector)]
    )


def map_from_canonical(bounds: Sequence[Bound], canonical: Vector) -> Vector:
    check_dimensions(len(bounds), canonical.k, "map_from_canonical")
    return Vector.from_array(
        [bound.map_from_canonical(value) for bound, value in zip(bounds, canonical)]
    )
