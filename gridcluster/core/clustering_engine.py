"""
Clustering Engine - Orchestrates clustering operations.

Main entry point for clustering functionality.
Builds the point set, manages algorithm selection and execution, and
summarizes results.
"""

import logging
from typing import Any, Dict, Optional, Sequence

from gridcluster.config.settings_loader import Settings, get_settings
from gridcluster.core.agglomerative_algorithm import HierarchicalClustering
from gridcluster.core.base_clustering import NOISE, ClusteringConfig, ClusterResult
from gridcluster.core.dbscan_algorithm import DensityScan
from gridcluster.core.kmeans_algorithm import VectorQuantizer
from gridcluster.core.point_set import PointLike, PointSet
from gridcluster.core.spatial_index import SpatialIndex, index_fits
from gridcluster.schemas.data_models import (
    ClusteringOutput,
    ClusteringSummary,
    LinkagePolicy,
)
from gridcluster.utils.advanced_logging import MetricsLogger, PerformanceLogger
from gridcluster.utils.error_handling import ClusteringFailedError, InvalidAlgorithmError

logger = logging.getLogger(__name__)


class ClusteringEngine:
    """
    Main clustering engine that orchestrates different algorithms.

    Provides a unified interface for all clustering operations regardless
    of the underlying algorithm. Parameters not passed explicitly come from
    the algorithm's section of the settings.
    """

    # Registry of available algorithms
    ALGORITHMS = {
        "hierarchical": HierarchicalClustering,
        "dbscan": DensityScan,
        "kmeans": VectorQuantizer,
    }

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize clustering engine."""
        self.settings = settings or get_settings()
        self.last_duration_ms = 0.0
        self.last_params: Dict[str, Any] = {}
        logger.info("Initialized ClusteringEngine")

    def default_params(self, algorithm: str) -> Dict[str, Any]:
        """Per-algorithm parameters from settings."""
        clustering = self.settings.clustering
        if algorithm == "hierarchical":
            return {"linkage": clustering.hierarchical.linkage.value}
        if algorithm == "dbscan":
            return {
                "radius": clustering.dbscan.radius,
                "min_points": clustering.dbscan.min_points,
            }
        if algorithm == "kmeans":
            return {
                "cluster_count": clustering.kmeans.cluster_count,
                "seed": clustering.kmeans.seed,
                "max_iterations": clustering.kmeans.max_iterations,
            }
        return {}

    def build_point_set(
        self,
        points: Sequence[PointLike],
        use_spatial_index: Optional[bool] = None,
    ) -> PointSet:
        """
        Wrap raw points in a PointSet, or a SpatialIndex when indexing is on.

        Args:
            points: Vectors or coordinate sequences
            use_spatial_index: Override for the point_set.use_spatial_index setting
        """
        point_settings = self.settings.clustering.point_set
        if use_spatial_index is None:
            use_spatial_index = point_settings.use_spatial_index
        if use_spatial_index and len(points) > 0 and not index_fits(len(points), len(points[0])):
            logger.warning(
                f"Grid index over {len(points)} points in {len(points[0])} dimensions "
                "exceeds the cell cap; falling back to the naive point set"
            )
            use_spatial_index = False
        point_set_class = SpatialIndex if use_spatial_index else PointSet
        return point_set_class(
            points,
            bound_slack=point_settings.bound_slack,
            degenerate_padding=point_settings.degenerate_padding,
        )

    def cluster(
        self,
        points: Sequence[PointLike],
        algorithm: Optional[str] = None,
        algorithm_params: Optional[Dict[str, Any]] = None,
        use_spatial_index: Optional[bool] = None,
    ) -> ClusterResult:
        """
        Perform clustering using the specified algorithm.

        Args:
            points: Points to cluster, or an already built PointSet
            algorithm: Algorithm name (hierarchical/dbscan/kmeans); settings default if None
            algorithm_params: Algorithm-specific parameters, overriding settings
            use_spatial_index: Build a SpatialIndex (settings default if None)

        Returns:
            ClusterResult for the chosen algorithm

        Raises:
            InvalidAlgorithmError: If algorithm is not supported
            ClusteringFailedError: If the algorithm runs out of memory
        """
        algorithm = (algorithm or self.settings.clustering.default_algorithm.value).lower()
        if algorithm not in self.ALGORITHMS:
            raise InvalidAlgorithmError(
                f"Unsupported algorithm '{algorithm}'. "
                f"Supported: {list(self.ALGORITHMS.keys())}",
                details={"algorithm": algorithm},
            )

        params = self.default_params(algorithm)
        params.update(algorithm_params or {})
        seed = params.pop("seed", None)
        self.last_params = dict(params, seed=seed) if algorithm == "kmeans" else dict(params)

        point_set = (
            points if isinstance(points, PointSet)
            else self.build_point_set(points, use_spatial_index)
        )
        logger.info(f"Starting {algorithm} clustering on {point_set.n} points")

        config = ClusteringConfig(algorithm_name=algorithm, params=params, seed=seed)
        algorithm_class = self.ALGORITHMS[algorithm]

        try:
            if self.settings.monitoring.track_clustering_time:
                with PerformanceLogger(
                    f"{algorithm}_clustering",
                    item_count=point_set.n,
                    algorithm=algorithm,
                ) as perf:
                    result = algorithm_class.from_config(point_set, config)
                self.last_duration_ms = perf.elapsed_time * 1000.0
            else:
                result = algorithm_class.from_config(point_set, config)
                self.last_duration_ms = 0.0
        except MemoryError as e:
            raise ClusteringFailedError(
                f"{algorithm} clustering ran out of memory on {point_set.n} points",
                details={"algorithm": algorithm, "n": point_set.n, "k": point_set.k},
            ) from e

        if self.settings.monitoring.track_memory_usage:
            MetricsLogger().log_cpu_memory(context=f"{algorithm}_clustering")

        logger.info(f"{algorithm} clustering complete: {result.cluster_count()} clusters")
        return result

    def summarize(
        self,
        result: ClusterResult,
        algorithm: str,
        params: Optional[Dict[str, Any]] = None,
        processing_time_ms: Optional[float] = None,
    ) -> ClusteringSummary:
        """
        Build the summary schema for a finished run.

        Args:
            result: Result returned by cluster()
            algorithm: Algorithm name used
            params: Parameters to record (defaults to the last cluster() run)
            processing_time_ms: Duration (defaults to the last cluster() run)
        """
        labels = result.labels
        sizes = [
            len(result.points_in_cluster(i)) for i in range(result.cluster_count())
        ]
        quality = (
            result.quality_metrics()
            if self.settings.monitoring.compute_quality_metrics
            else {}
        )
        if isinstance(result, VectorQuantizer):
            quality["inertia"] = result.inertia
            quality["iterations"] = float(result.iterations)

        recorded = {
            key: value.value if isinstance(value, LinkagePolicy) else value
            for key, value in (self.last_params if params is None else params).items()
        }
        return ClusteringSummary(
            algorithm=algorithm,
            total_points=result.point_set.n,
            dimensions=result.point_set.k,
            clusters=result.cluster_count(),
            noise_points=int((labels == NOISE).sum()),
            cluster_sizes=sizes,
            quality_metrics=quality,
            processing_time_ms=(
                self.last_duration_ms if processing_time_ms is None else processing_time_ms
            ),
            params=recorded,
        )

    def to_output(
        self,
        result: ClusterResult,
        algorithm: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> ClusteringOutput:
        """Summary plus exported clusters (and centroids for kmeans)."""
        centroids = None
        if isinstance(result, VectorQuantizer):
            centroids = [centroid.to_list() for centroid in result.centroids]
        return ClusteringOutput(
            summary=self.summarize(result, algorithm, params),
            clusters=result.export(),
            centroids=centroids,
        )

    def validate_clustering_config(
        self,
        algorithm: str,
        params: Dict[str, Any],
    ) -> Dict[str, str]:
        """
        Validate clustering configuration.

        Args:
            algorithm: Algorithm name
            params: Algorithm parameters

        Returns:
            Dictionary of validation errors (empty if valid)
        """
        errors = {}

        if algorithm not in self.ALGORITHMS:
            errors["algorithm"] = f"Unsupported algorithm '{algorithm}'"
            return errors

        if algorithm == "hierarchical":
            linkage = params.get("linkage", LinkagePolicy.MIN)
            try:
                LinkagePolicy(linkage)
            except ValueError:
                errors["linkage"] = (
                    f"Unknown linkage '{linkage}'. "
                    f"Supported: {[policy.value for policy in LinkagePolicy]}"
                )

        elif algorithm == "dbscan":
            radius = params.get("radius", 1.0)
            min_points = params.get("min_points", 2)

            if radius < 0:
                errors["radius"] = "Must be >= 0"

            if min_points < 1:
                errors["min_points"] = "Must be >= 1"

        elif algorithm == "kmeans":
            cluster_count = params.get("cluster_count", 8)
            max_iterations = params.get("max_iterations")

            if cluster_count < 1:
                errors["cluster_count"] = "Must be >= 1"

            if max_iterations is not None and max_iterations < 1:
                errors["max_iterations"] = "Must be >= 1 or None"

        return errors
