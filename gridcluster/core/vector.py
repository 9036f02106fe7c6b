"""
Fixed-dimension real-valued vectors.

A Vector wraps a read-only numpy array of k floats. The algebra is exposed as
static methods so call sites read as ``Vector.delta_norm_sq(a, b)``; every
binary operation checks that both operands share k.
"""

from typing import Any, Iterator, Mapping, Optional, Sequence

import numpy as np

from gridcluster.utils.error_handling import (
    EmptyInputError,
    check_dimensions,
)


class Vector:
    """Immutable k-dimensional point or displacement."""

    __slots__ = ("_values",)

    def __init__(self, *values: float):
        array = np.array(values, dtype=np.float64).reshape(-1)
        array.setflags(write=False)
        self._values = array

    @classmethod
    def from_array(cls, values: Sequence[float]) -> "Vector":
        """Build a Vector from any 1-D sequence or array."""
        vector = cls.__new__(cls)
        array = np.array(values, dtype=np.float64).reshape(-1)
        array.setflags(write=False)
        vector._values = array
        return vector

    @classmethod
    def filled(cls, k: int, value: float) -> "Vector":
        """k copies of value."""
        return cls.from_array(np.full(k, value, dtype=np.float64))

    @classmethod
    def from_mapping(cls, record: Mapping[str, Any], *keys: str) -> "Vector":
        """Pick the named numeric fields of a record, in key order."""
        return cls.from_array([float(record[key]) for key in keys])

    @classmethod
    def random(cls, k: int, rng: Optional[np.random.Generator] = None) -> "Vector":
        """Uniform sample from [0, 1)^k."""
        rng = rng if rng is not None else np.random.default_rng()
        return cls.from_array(rng.random(k))

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def values(self) -> np.ndarray:
        return self._values

    @property
    def k(self) -> int:
        return self._values.shape[0]

    def __len__(self) -> int:
        return self.k

    def __iter__(self) -> Iterator[float]:
        return (float(v) for v in self._values)

    def __getitem__(self, i: int) -> float:
        return float(self._values[i])

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Vector):
            return NotImplemented
        return self.k == other.k and bool(np.array_equal(self._values, other._values))

    def __hash__(self) -> int:
        return hash(self._values.tobytes())

    def __repr__(self) -> str:
        return "(" + ", ".join(repr(float(v)) for v in self._values) + ")"

    def to_list(self) -> list[float]:
        return [float(v) for v in self._values]

    # -------------------------------------------------------------------------
    # Algebra
    # -------------------------------------------------------------------------

    @staticmethod
    def dot(a: "Vector", b: "Vector") -> float:
        check_dimensions(a.k, b.k, "dot")
        return float(np.dot(a._values, b._values))

    @staticmethod
    def norm_sq(a: "Vector") -> float:
        return float(np.dot(a._values, a._values))

    @staticmethod
    def norm(a: "Vector") -> float:
        return float(np.sqrt(Vector.norm_sq(a)))

    @staticmethod
    def add(*vectors: "Vector") -> "Vector":
        """Sum of one or more vectors."""
        if not vectors:
            raise EmptyInputError("add requires at least one vector")
        k = vectors[0].k
        total = np.zeros(k, dtype=np.float64)
        for vector in vectors:
            check_dimensions(k, vector.k, "add")
            total += vector._values
        return Vector.from_array(total)

    @staticmethod
    def average(*vectors: "Vector") -> "Vector":
        """Arithmetic mean of one or more vectors."""
        if not vectors:
            raise EmptyInputError("average requires at least one vector")
        return Vector.scale(Vector.add(*vectors), 1.0 / len(vectors))

    @staticmethod
    def scale(a: "Vector", s: float) -> "Vector":
        return Vector.from_array(a._values * s)

    @staticmethod
    def delta(a: "Vector", b: "Vector") -> "Vector":
        """a - b"""
        check_dimensions(a.k, b.k, "delta")
        return Vector.from_array(a._values - b._values)

    @staticmethod
    def delta_norm_sq(a: "Vector", b: "Vector") -> float:
        return Vector.norm_sq(Vector.delta(a, b))

    @staticmethod
    def delta_norm(a: "Vector", b: "Vector") -> float:
        return float(np.sqrt(Vector.delta_norm_sq(a, b)))

    @staticmethod
    def normalize(a: "Vector") -> "Vector":
        """Unit vector in the direction of a."""
        length = Vector.norm(a)
        if length == 0.0:
            raise ValueError("Cannot normalize a zero-length vector")
        return Vector.scale(a, 1.0 / length)

    # Operators delegate to the checked algebra above.

    def __add__(self, other: "Vector") -> "Vector":
        return Vector.add(self, other)

    def __sub__(self, other: "Vector") -> "Vector":
        return Vector.delta(self, other)

    def __mul__(self, s: float) -> "Vector":
        return Vector.scale(self, s)

    __rmul__ = __mul__

    def __neg__(self) -> "Vector":
        return Vector.scale(self, -1.0)
