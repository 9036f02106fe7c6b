"""
Density-Based Clustering (DBSCAN) Implementation.

DBSCAN is ideal for:
- Clusters of arbitrary shape
- Unknown number of clusters
- Data with noise points that belong to no cluster

Every neighborhood query goes through the point set's range_search, so a
SpatialIndex makes the scan sub-quadratic on well-spread data.
"""

import logging
from typing import List

import numpy as np

from gridcluster.core.base_clustering import (
    NOISE,
    UNASSIGNED,
    ClusteringConfig,
    ClusterResult,
)
from gridcluster.core.point_set import PointSet
from gridcluster.core.vector import Vector
from gridcluster.utils.error_handling import ConfigurationError

logger = logging.getLogger(__name__)


class DensityScan(ClusterResult):
    """
    DBSCAN clustering over a PointSet.

    Best for: spatially dense groups separated by sparse regions
    Strengths: finds the number of clusters itself, labels outliers as noise
    Weaknesses: one radius for the whole data set
    """

    def __init__(self, point_set: PointSet, radius: float, min_points: int):
        """
        Run the scan.

        Args:
            point_set: Points to cluster
            radius: Neighborhood radius (strict, as in range_search)
            min_points: Neighbors (self included) needed to seed a cluster

        Raises:
            ConfigurationError: If radius is negative or min_points < 1
        """
        super().__init__(point_set)
        if radius < 0:
            raise ConfigurationError(
                f"radius must be non-negative, got {radius}",
                details={"radius": radius},
            )
        if min_points < 1:
            raise ConfigurationError(
                f"min_points must be at least 1, got {min_points}",
                details={"min_points": min_points},
            )

        self.radius = radius
        self.min_points = min_points
        self._labels = np.full(point_set.n, UNASSIGNED, dtype=np.int64)
        self._cluster_count = 0
        # a point enters the expansion stack at most once per scan
        self._queued = np.zeros(point_set.n, dtype=bool)
        self.peak_pending = 0

        logger.info(
            f"Starting DBSCAN on {point_set.n} points: "
            f"radius={radius}, min_points={min_points}"
        )
        self._scan()

        self.noise_count = int(np.count_nonzero(self._labels == NOISE))
        logger.info(f"DBSCAN found {self._cluster_count} clusters, {self.noise_count} noise points")
        logger.debug(f"Expansion stack peaked at {self.peak_pending} points")

    @classmethod
    def from_config(cls, point_set: PointSet, config: ClusteringConfig) -> "DensityScan":
        return cls(
            point_set,
            radius=config.params.get("radius", 1.0),
            min_points=config.params.get("min_points", 2),
        )

    def _neighbors(self, i: int) -> np.ndarray:
        return self.point_set.range_search(self.point_set.get(i), self.radius)

    def _scan(self) -> None:
        for i in range(self.point_set.n):
            if self._labels[i] != UNASSIGNED:
                continue

            neighbors = self._neighbors(i)
            if len(neighbors) < self.min_points:
                self._labels[i] = NOISE
                continue

            cluster_id = self._cluster_count
            self._cluster_count += 1
            self._labels[i] = cluster_id
            self._expand(cluster_id, neighbors)

    def _push(self, pending: List[int], indices: np.ndarray) -> None:
        # UNASSIGNED or NOISE, and not already waiting on the stack
        fresh = indices[(self._labels[indices] < 0) & ~self._queued[indices]]
        self._queued[fresh] = True
        pending.extend(fresh.tolist())
        self.peak_pending = max(self.peak_pending, len(pending))

    def _expand(self, cluster_id: int, seeds: np.ndarray) -> None:
        pending: List[int] = []
        self._push(pending, seeds)
        while pending:
            j = pending.pop()
            label = self._labels[j]
            if label == UNASSIGNED:
                self._labels[j] = cluster_id
                neighbors = self._neighbors(j)
                if len(neighbors) > self.min_points:
                    self._push(pending, neighbors)
            elif label == NOISE:
                # border point: joins the cluster but does not grow it
                self._labels[j] = cluster_id

    # -------------------------------------------------------------------------
    # Result interface
    # -------------------------------------------------------------------------

    def cluster_count(self) -> int:
        return self._cluster_count

    def points_in_cluster(self, i: int) -> List[Vector]:
        self._check_cluster(i)
        return self._points_with_label(self._labels, i)

    @property
    def labels(self) -> np.ndarray:
        """Cluster id per point, or NOISE."""
        return self._labels.copy()

    def noise_points(self) -> List[Vector]:
        return self._points_with_label(self._labels, NOISE)
