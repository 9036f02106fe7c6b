"""
Error Handling Module

Provides the exception hierarchy shared by the spatial data layer and the
clustering algorithms:
- Base error with error code, details and dict export
- Vector errors (dimension mismatch, index out of range, unreadable point files)
- Clustering errors (empty input, unknown algorithm, failed run)

All of these are precondition violations raised at the point of use. A
clustering run is a deterministic offline computation, so nothing here is
retried.
"""

import time
from typing import Any, Optional


# =============================================================================
# Custom Exception Hierarchy
# =============================================================================


class GridClusterError(Exception):
    """Base exception for all gridcluster errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.timestamp = time.time()

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/CLI output."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp,
        }


# Configuration Errors
class ConfigurationError(GridClusterError):
    """Error in settings or algorithm parameters."""
    pass


# Vector Errors
class VectorError(GridClusterError):
    """Base class for vector and point selection errors."""
    pass


class DimensionMismatchError(VectorError, ValueError):
    """Operands have differing dimensionality."""
    pass


class IndexOutOfRangeError(VectorError, IndexError):
    """Point index outside [0, n)."""
    pass


class InputFormatError(VectorError, ValueError):
    """Point file could not be parsed into coordinates."""
    pass


# Clustering Errors
class ClusteringError(GridClusterError):
    """Base class for clustering algorithm errors."""
    pass


class EmptyInputError(ClusteringError, ValueError):
    """Zero points supplied where at least one is required."""
    pass


class InvalidAlgorithmError(ClusteringError, ValueError):
    """Unknown or unsupported clustering algorithm."""
    pass


class ClusteringFailedError(ClusteringError):
    """Clustering algorithm could not produce a result."""
    pass


# =============================================================================
# Precondition Helpers
# =============================================================================


def check_dimensions(expected: int, actual: int, operation: str = "operation") -> None:
    """
    Raise DimensionMismatchError unless both dimensionalities agree.

    Args:
        expected: Dimensionality of the first operand
        actual: Dimensionality of the other operand
        operation: Operation name for the error message
    """
    if expected != actual:
        raise DimensionMismatchError(
            f"{operation} requires equal dimensions, got {expected} and {actual}",
            details={"expected": expected, "actual": actual, "operation": operation},
        )


def check_index(i: int, n: int) -> None:
    """Raise IndexOutOfRangeError unless 0 <= i < n."""
    if not 0 <= i < n:
        raise IndexOutOfRangeError(
            f"Index {i} out of range for {n} points",
            details={"index": i, "n": n},
        )
