"""
Base Clustering Result Interface.

Defines the contract shared by all clustering algorithms: each one runs to
completion inside its constructor and then answers cluster_count(),
points_in_cluster(i) and export().
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from gridcluster.core.point_set import PointSet
from gridcluster.core.vector import Vector
from gridcluster.utils.error_handling import EmptyInputError, check_index

# label sentinels for assignment arrays
UNASSIGNED = -1
NOISE = -2


@dataclass
class ClusteringConfig:
    """Configuration for clustering algorithms."""

    algorithm_name: str
    params: Dict[str, Any] = field(default_factory=dict)
    seed: Optional[int] = None


class ClusterResult(ABC):
    """
    Abstract base class for clustering results.

    Subclasses perform the whole computation in __init__; the point set is
    only read, never modified.
    """

    def __init__(self, point_set: PointSet):
        """
        Args:
            point_set: Points to cluster (PointSet or SpatialIndex)
        """
        if point_set is None or point_set.n == 0:
            raise EmptyInputError("Cannot cluster an empty point set")
        self.point_set = point_set

    @abstractmethod
    def cluster_count(self) -> int:
        """Number of clusters exposed by this result."""
        pass

    @abstractmethod
    def points_in_cluster(self, i: int) -> List[Vector]:
        """Member points of cluster i."""
        pass

    @property
    def labels(self) -> np.ndarray:
        """Per-point cluster label (or a sentinel), indexed like the point set."""
        raise NotImplementedError

    def _check_cluster(self, i: int) -> None:
        check_index(i, self.cluster_count())

    def _points_with_label(self, labels: np.ndarray, i: int) -> List[Vector]:
        return self.point_set.get_points(np.flatnonzero(labels == i))

    def export(self) -> List[List[List[float]]]:
        """
        Nested-list projection: one entry per cluster, each holding the
        coordinate lists of its member points. JSON-serializable as is.
        """
        return [
            [point.to_list() for point in self.points_in_cluster(i)]
            for i in range(self.cluster_count())
        ]

    def quality_metrics(self) -> Dict[str, float]:
        """
        Calculate clustering quality metrics over non-noise points.

        Returns:
            Dictionary with silhouette_score and davies_bouldin_index when at
            least two clusters hold points and not every point is its own
            cluster; empty otherwise.
        """
        from sklearn.metrics import davies_bouldin_score, silhouette_score

        metrics: Dict[str, float] = {}
        labels = self.labels
        vectors = self.point_set.matrix

        clustered_mask = labels >= 0
        clustered = labels[clustered_mask]
        n_labels = len(np.unique(clustered))

        if 1 < n_labels < len(clustered):
            metrics["silhouette_score"] = float(
                silhouette_score(vectors[clustered_mask], clustered)
            )
            metrics["davies_bouldin_index"] = float(
                davies_bouldin_score(vectors[clustered_mask], clustered)
            )

        return metrics
