"""
Agglomerative Hierarchical Clustering Algorithm Implementation.

Builds the full merge tree (dendrogram) over all n points:
- Starts from n leaf clusters
- Repeatedly merges the live pair with the smallest linkage distance
- Stops when a single root remains (2n - 1 nodes in total)

Linkage policies: min (single), max (complete), mean, centroid.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

import numpy as np

from gridcluster.core.base_clustering import ClusterResult, ClusteringConfig
from gridcluster.core.point_set import PointSet, squared_distances
from gridcluster.core.vector import Vector
from gridcluster.schemas.data_models import LinkagePolicy
from gridcluster.utils.advanced_logging import BatchLogger

logger = logging.getLogger(__name__)

LARGE_INPUT_WARNING = 10000


@dataclass(frozen=True)
class ClusterNode:
    """
    Node of the merge tree, addressed by id in the arena.

    Leaves wrap one point (id == point index); internal nodes own exactly
    two child ids.
    """

    id: int
    size: int = 1
    left: Optional[int] = None
    right: Optional[int] = None

    @property
    def is_leaf(self) -> bool:
        return self.left is None

    @property
    def pair_id(self) -> Tuple[int, int]:
        """Leaves pair with themselves; internal nodes with their two children."""
        if self.is_leaf:
            return (self.id, self.id)
        return (self.left, self.right)

    @property
    def sub_ids(self) -> Tuple[int, ...]:
        return (self.id,) if self.is_leaf else (self.left, self.right)


class DistanceCache:
    """
    Distances keyed by an ordered pair of node ids.

    Point-to-point distances are computed eagerly into a dense matrix;
    cluster-to-cluster distances are stored as they are first computed.
    Node membership never changes, so nothing is ever invalidated.
    """

    def __init__(self, matrix: np.ndarray):
        self.n = matrix.shape[0]
        self._points = np.zeros((self.n, self.n), dtype=np.float64)
        for i in range(self.n - 1):
            row = np.sqrt(squared_distances(matrix[i + 1:], matrix[i]))
            self._points[i, i + 1:] = row
            self._points[i + 1:, i] = row
        self._clusters: Dict[Tuple[int, int], float] = {}

    @staticmethod
    def key(a: int, b: int) -> Tuple[int, int]:
        return (a, b) if a <= b else (b, a)

    def get(self, a: int, b: int) -> Optional[float]:
        if a < self.n and b < self.n:
            return float(self._points[a, b])
        return self._clusters.get(self.key(a, b))

    def put(self, a: int, b: int, distance: float) -> None:
        self._clusters[self.key(a, b)] = distance

    def point_block(self, a_points: np.ndarray, b_points: np.ndarray) -> np.ndarray:
        return self._points[np.ix_(a_points, b_points)]

    def __contains__(self, pair: Tuple[int, int]) -> bool:
        return self.get(*pair) is not None

    def __len__(self) -> int:
        return (self.n * (self.n - 1)) // 2 + len(self._clusters)


class HierarchicalClustering(ClusterResult):
    """
    Agglomerative hierarchical clustering over a PointSet.

    Best for: small data sets where the full merge hierarchy matters
    Strengths: deterministic, any of four linkage rules
    Weaknesses: O(n^2) memory and O(n^3) worst-case time
    """

    def __init__(
        self,
        point_set: PointSet,
        linkage: Union[LinkagePolicy, str] = LinkagePolicy.MIN,
    ):
        """
        Build the merge tree.

        Args:
            point_set: Points to cluster
            linkage: Linkage policy (min/max/mean/centroid)
        """
        super().__init__(point_set)
        self.linkage = LinkagePolicy(linkage)
        n = point_set.n

        if n > LARGE_INPUT_WARNING:
            logger.warning(
                f"Hierarchical clustering on {n} points "
                "may be slow and memory-intensive. Consider dbscan or kmeans."
            )

        logger.info(f"Building {n} clusters with {self.linkage.value} linkage")
        self.nodes: List[ClusterNode] = [ClusterNode(id=i) for i in range(n)]
        self._members: Dict[int, np.ndarray] = {}

        # yes, this is n^2
        logger.info(f"Pre-computing distances for {(n * (n - 1)) // 2} pairs")
        self.distance_cache = DistanceCache(point_set.matrix)
        self.merges: List[Tuple[int, int, float, int]] = []

        self._merge_all()
        self.root = self.nodes[-1]
        logger.info(f"Finished: {len(self.nodes)} nodes, root {self.root.id}")

    @classmethod
    def from_config(cls, point_set: PointSet, config: ClusteringConfig) -> "HierarchicalClustering":
        return cls(point_set, config.params.get("linkage", LinkagePolicy.MIN))

    # -------------------------------------------------------------------------
    # Merge loop
    # -------------------------------------------------------------------------

    def _merge_all(self) -> None:
        live = list(range(len(self.nodes)))

        # live-order distance matrix, only the strict upper triangle is read
        live_distances = self.distance_cache.point_block(
            np.arange(len(live)), np.arange(len(live))
        )
        progress = BatchLogger(
            total_items=max(len(live) - 1, 0),
            operation="hierarchical_merge",
            log_interval=max(len(live) // 10, 1),
        )

        while len(live) > 1:
            # row-major argmin over i < j, so the first pair found wins ties
            m = len(live)
            upper = np.where(np.triu(np.ones((m, m), dtype=bool), k=1), live_distances, np.inf)
            i, j = divmod(int(np.argmin(upper)), m)
            distance = float(upper[i, j])

            a, b = live[i], live[j]
            node = ClusterNode(
                id=len(self.nodes),
                size=self.nodes[a].size + self.nodes[b].size,
                left=a,
                right=b,
            )
            self.nodes.append(node)
            self.merges.append((a, b, distance, node.size))

            # j > i, so removing j first keeps i in place
            del live[j]
            del live[i]
            keep = [x for x in range(m) if x != i and x != j]
            live_distances = live_distances[np.ix_(keep, keep)]

            row = np.array([self._distance(node.id, other) for other in live])
            live.append(node.id)
            live_distances = np.block([
                [live_distances, row[:, None]],
                [row[None, :], np.zeros((1, 1))],
            ])
            progress.update()

        progress.complete()

    def _distance(self, a: int, b: int) -> float:
        cached = self.distance_cache.get(a, b)
        if cached is not None:
            return cached
        distance = self._linkage_distance(a, b)
        self.distance_cache.put(a, b, distance)
        return distance

    def _linkage_distance(self, a: int, b: int) -> float:
        if self.linkage in (LinkagePolicy.MIN, LinkagePolicy.MAX):
            # the newer cluster was formed while the other was live, so its
            # two children already have cached distances to the other
            newer, other = (a, b) if a > b else (b, a)
            sub_distances = [self._distance(sub, other) for sub in self.nodes[newer].sub_ids]
            return min(sub_distances) if self.linkage is LinkagePolicy.MIN else max(sub_distances)

        a_points, b_points = self.members(a), self.members(b)
        if self.linkage is LinkagePolicy.MEAN:
            total = float(self.distance_cache.point_block(a_points, b_points).sum())
            return total / (len(a_points) + len(b_points))

        matrix = self.point_set.matrix
        a_centroid = matrix[a_points].mean(axis=0)
        b_centroid = matrix[b_points].mean(axis=0)
        return float(np.sqrt(np.sum((a_centroid - b_centroid) ** 2)))

    def members(self, node_id: int) -> np.ndarray:
        """Point indices under a node, left subtree first."""
        node = self.nodes[node_id]
        if node.is_leaf:
            return np.array([node.id])
        if node_id not in self._members:
            self._members[node_id] = np.concatenate(
                [self.members(node.left), self.members(node.right)]
            )
        return self._members[node_id]

    # -------------------------------------------------------------------------
    # Result interface
    # -------------------------------------------------------------------------

    def cluster_count(self) -> int:
        """The finest cut of the tree: every point is its own cluster."""
        return self.point_set.n

    def points_in_cluster(self, i: int) -> List[Vector]:
        self._check_cluster(i)
        return [self.point_set.get(i)]

    @property
    def labels(self) -> np.ndarray:
        return np.arange(self.point_set.n)

    @property
    def internal_node_count(self) -> int:
        return len(self.nodes) - self.point_set.n
