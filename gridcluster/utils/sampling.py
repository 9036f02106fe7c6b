"""
Synthetic point generation for demos and tests.

Points are drawn uniformly inside axis-aligned boxes; each point picks its
box at random, so cluster sizes vary a little from run to run.
"""

import logging
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from gridcluster.core.bound import Bound, map_from_canonical
from gridcluster.core.vector import Vector
from gridcluster.utils.error_handling import ConfigurationError, check_dimensions

logger = logging.getLogger(__name__)

BoxSpec = Sequence[Union[Bound, Tuple[float, float]]]

# three well separated 2-d boxes
DEFAULT_BOXES: List[List[Tuple[float, float]]] = [
    [(10.0, 20.0), (10.0, 30.0)],
    [(15.0, 25.0), (60.0, 80.0)],
    [(65.0, 90.0), (40.0, 50.0)],
]


def _as_bounds(box: BoxSpec) -> List[Bound]:
    return [b if isinstance(b, Bound) else Bound(*b) for b in box]


def sample_boxes(
    boxes: Sequence[BoxSpec],
    n: int,
    rng: Optional[np.random.Generator] = None,
) -> List[Vector]:
    """
    Draw n points, each uniform inside a randomly chosen box.

    Args:
        boxes: One list of per-dimension bounds (Bound or (lo, hi)) per box
        n: Number of points
        rng: Random generator (fresh entropy if None)

    Returns:
        List of n Vectors

    Raises:
        ConfigurationError: If no boxes are given or n is negative
        DimensionMismatchError: If boxes differ in dimensionality
    """
    if len(boxes) == 0:
        raise ConfigurationError("At least one box is required")
    if n < 0:
        raise ConfigurationError(f"n must be non-negative, got {n}", details={"n": n})

    rng = rng if rng is not None else np.random.default_rng()
    bounds = [_as_bounds(box) for box in boxes]
    k = len(bounds[0])
    for box in bounds[1:]:
        check_dimensions(k, len(box), "sample_boxes")

    picks = rng.integers(0, len(bounds), size=n)
    samples = [
        map_from_canonical(bounds[int(pick)], Vector.random(k, rng))
        for pick in picks
    ]
    logger.debug(f"Sampled {n} points from {len(bounds)} boxes in {k} dimensions")
    return samples
