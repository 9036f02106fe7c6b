"""
K-Means (Vector Quantization) Algorithm Implementation.

K-Means is ideal for:
- Fast clustering when the number of clusters is known
- Spherical, evenly-sized clusters
- Summarizing a point set by a small codebook of centroids
"""

import logging
from typing import List, Optional

import numpy as np

from gridcluster.core.base_clustering import ClusteringConfig, ClusterResult
from gridcluster.core.point_set import PointSet
from gridcluster.core.vector import Vector
from gridcluster.utils.error_handling import ConfigurationError

logger = logging.getLogger(__name__)


class VectorQuantizer(ClusterResult):
    """
    Lloyd-style k-means over a PointSet.

    Best for: compact blobs, fixed cluster count
    Strengths: simple, each iteration is O(n * c * k)
    Weaknesses: requires c as input, result depends on the random initialization
    """

    def __init__(
        self,
        point_set: PointSet,
        cluster_count: int,
        rng: Optional[np.random.Generator] = None,
        max_iterations: Optional[int] = None,
    ):
        """
        Run k-means to convergence.

        Args:
            point_set: Points to cluster
            cluster_count: Number of centroids c (may exceed n)
            rng: Random generator for the initial centroids
            max_iterations: Optional cap on refinement rounds (None = until stable)

        Raises:
            ConfigurationError: If cluster_count or max_iterations is not positive
        """
        super().__init__(point_set)
        if cluster_count < 1:
            raise ConfigurationError(
                f"cluster_count must be at least 1, got {cluster_count}",
                details={"cluster_count": cluster_count},
            )
        if max_iterations is not None and max_iterations < 1:
            raise ConfigurationError(
                f"max_iterations must be at least 1, got {max_iterations}",
                details={"max_iterations": max_iterations},
            )

        self.c = cluster_count
        self.max_iterations = max_iterations
        self.rng = rng if rng is not None else np.random.default_rng()

        if cluster_count > point_set.n:
            logger.warning(
                f"cluster_count {cluster_count} exceeds {point_set.n} points; "
                "some clusters will stay empty"
            )

        # initial centroids: c points drawn with replacement
        matrix = point_set.matrix
        chosen = self.rng.integers(0, point_set.n, size=self.c)
        self._centroids = matrix[chosen].astype(np.float64, copy=True)
        self._labels = np.zeros(point_set.n, dtype=np.int64)

        self.iterations = 0
        self.converged = False
        self._run()

    @classmethod
    def from_config(cls, point_set: PointSet, config: ClusteringConfig) -> "VectorQuantizer":
        rng = np.random.default_rng(config.seed)
        return cls(
            point_set,
            cluster_count=config.params.get("cluster_count", 8),
            rng=rng,
            max_iterations=config.params.get("max_iterations"),
        )

    def _run(self) -> None:
        matrix = self.point_set.matrix
        logger.info(f"Starting k-means: n={self.point_set.n}, c={self.c}")

        while True:
            self.iterations += 1
            self._labels = self._assign(matrix)

            updated = self._centroids.copy()
            for j in range(self.c):
                members = matrix[self._labels == j]
                # empty clusters keep their centroid
                if len(members) > 0:
                    updated[j] = members.mean(axis=0)

            delta = float(np.sum((updated - self._centroids) ** 2))
            self._centroids = updated
            logger.debug(f"Iteration {self.iterations}: delta={delta}")

            if delta == 0.0:
                self.converged = True
                break
            if self.max_iterations is not None and self.iterations >= self.max_iterations:
                logger.warning(
                    f"k-means stopped after {self.iterations} iterations "
                    f"without converging (last delta {delta})"
                )
                break

        self.inertia = float(
            np.sum((matrix - self._centroids[self._labels]) ** 2)
        )
        for j, centroid in enumerate(self._centroids):
            logger.debug(f"Centroid {j}: {Vector.from_array(centroid)}")
        logger.info(
            f"k-means finished after {self.iterations} iterations: "
            f"converged={self.converged}, inertia={self.inertia:.4f}"
        )

    def _assign(self, matrix: np.ndarray) -> np.ndarray:
        """Nearest centroid per point; argmin breaks ties toward the lowest index."""
        diff = matrix[:, None, :] - self._centroids[None, :, :]
        squared = np.einsum("ncj,ncj->nc", diff, diff)
        return np.argmin(squared, axis=1)

    # -------------------------------------------------------------------------
    # Result interface
    # -------------------------------------------------------------------------

    def cluster_count(self) -> int:
        return self.c

    def points_in_cluster(self, i: int) -> List[Vector]:
        self._check_cluster(i)
        return self._points_with_label(self._labels, i)

    @property
    def labels(self) -> np.ndarray:
        return self._labels.copy()

    @property
    def centroids(self) -> List[Vector]:
        return [Vector.from_array(centroid) for centroid in self._centroids]

    @property
    def centroid_matrix(self) -> np.ndarray:
        return self._centroids.copy()
