"""
Unit tests for ClusteringEngine.

Tests:
- Algorithm dispatch and settings defaults
- Point set construction (naive or indexed)
- Configuration validation
- Summaries and output documents
"""

import json

import numpy as np
import pytest
import structlog

from gridcluster.core.agglomerative_algorithm import HierarchicalClustering
from gridcluster.core.clustering_engine import ClusteringEngine
from gridcluster.core.dbscan_algorithm import DensityScan
from gridcluster.core.kmeans_algorithm import VectorQuantizer
from gridcluster.core.point_set import PointSet
from gridcluster.core.spatial_index import SpatialIndex
from gridcluster.schemas.data_models import ClusteringSummary, LinkagePolicy
from gridcluster.utils.error_handling import (
    ClusteringFailedError,
    EmptyInputError,
    InvalidAlgorithmError,
)


@pytest.mark.unit
class TestClusteringEngine:
    """Test suite for the clustering engine."""

    def test_registry(self, settings):
        engine = ClusteringEngine(settings)
        assert set(engine.ALGORITHMS) == {"hierarchical", "dbscan", "kmeans"}

    def test_unsupported_algorithm(self, settings, small_box_points):
        engine = ClusteringEngine(settings)
        with pytest.raises(InvalidAlgorithmError, match="Unsupported algorithm"):
            engine.cluster(small_box_points, "hdbscan", {})
        with pytest.raises(ValueError):
            engine.cluster(small_box_points, "hdbscan", {})

    def test_build_point_set(self, settings, small_box_points):
        engine = ClusteringEngine(settings)
        assert isinstance(engine.build_point_set(small_box_points), SpatialIndex)
        naive = engine.build_point_set(small_box_points, use_spatial_index=False)
        assert type(naive) is PointSet

    def test_point_set_settings_applied(self, settings, small_box_points):
        settings.clustering.point_set.use_spatial_index = False
        settings.clustering.point_set.degenerate_padding = 2.0
        engine = ClusteringEngine(settings)
        point_set = engine.build_point_set([[1.0, 0.0], [1.0, 5.0]])
        assert type(point_set) is PointSet
        assert point_set.bounds[0].span == pytest.approx(4.0)

    def test_dbscan(self, settings, box_points):
        engine = ClusteringEngine(settings)
        result = engine.cluster(box_points, "dbscan", {"radius": 2.0, "min_points": 2})
        assert isinstance(result, DensityScan)
        assert result.cluster_count() == 3

    def test_kmeans_seed(self, settings, blob_points):
        points, _ = blob_points
        engine = ClusteringEngine(settings)
        a = engine.cluster(points, "kmeans", {"cluster_count": 3, "seed": 4})
        b = engine.cluster(points, "kmeans", {"cluster_count": 3, "seed": 4})
        assert isinstance(a, VectorQuantizer)
        assert a.labels.tolist() == b.labels.tolist()
        assert engine.last_params["seed"] == 4

    def test_hierarchical(self, settings, small_box_points):
        engine = ClusteringEngine(settings)
        result = engine.cluster(small_box_points, "HIERARCHICAL", {"linkage": "max"})
        assert isinstance(result, HierarchicalClustering)
        assert result.linkage is LinkagePolicy.MAX
        assert result.cluster_count() == len(small_box_points)

    def test_settings_defaults(self, settings, line_points):
        settings.clustering.dbscan.radius = 1.6
        settings.clustering.dbscan.min_points = 3
        engine = ClusteringEngine(settings)
        result = engine.cluster(line_points, use_spatial_index=False)
        assert isinstance(result, DensityScan)
        assert result.labels.tolist() == [0, 0, 0, -2]

    def test_accepts_point_set(self, settings, small_box_points):
        engine = ClusteringEngine(settings)
        point_set = SpatialIndex(small_box_points)
        result = engine.cluster(point_set, "kmeans", {"cluster_count": 2, "seed": 0})
        assert result.point_set is point_set

    def test_empty_input(self, settings):
        engine = ClusteringEngine(settings)
        with pytest.raises(EmptyInputError):
            engine.cluster([], "dbscan", {})

    def test_memory_snapshot(self, settings, small_box_points):
        settings.monitoring.track_memory_usage = True
        engine = ClusteringEngine(settings)
        result = engine.cluster(small_box_points, "kmeans", {"cluster_count": 3, "seed": 0})
        assert result.cluster_count() == 3

    def test_high_dimensional_points_use_naive_set(self, settings, rng):
        engine = ClusteringEngine(settings)
        points = rng.random((200, 64))
        assert type(engine.build_point_set(points)) is PointSet

        result = engine.cluster(points, "dbscan", {"radius": 0.5, "min_points": 2})
        assert type(result.point_set) is PointSet
        assert result.noise_count == 200

    def test_timing_disabled(self, settings, small_box_points):
        settings.monitoring.track_clustering_time = False
        engine = ClusteringEngine(settings)
        with structlog.testing.capture_logs() as logs:
            engine.cluster(small_box_points, "kmeans", {"cluster_count": 3, "seed": 0})
        assert not [entry for entry in logs if entry["event"].startswith("operation_")]
        assert engine.last_duration_ms == 0.0

    def test_timing_enabled(self, settings, small_box_points):
        engine = ClusteringEngine(settings)
        with structlog.testing.capture_logs() as logs:
            engine.cluster(small_box_points, "kmeans", {"cluster_count": 3, "seed": 0})
        completed = [entry for entry in logs if entry["event"] == "operation_completed"]
        assert completed[0]["operation"] == "kmeans_clustering"

    def test_out_of_memory_is_reported(self, settings, small_box_points, monkeypatch):
        class Exhausted:
            @classmethod
            def from_config(cls, point_set, config):
                raise MemoryError()

        monkeypatch.setitem(ClusteringEngine.ALGORITHMS, "hierarchical", Exhausted)
        engine = ClusteringEngine(settings)
        with pytest.raises(ClusteringFailedError) as info:
            engine.cluster(small_box_points, "hierarchical", {})
        assert info.value.details["n"] == len(small_box_points)
        assert isinstance(info.value.__cause__, MemoryError)

    @pytest.mark.parametrize("algorithm,params,field", [
        ("dbscan", {"radius": -1.0}, "radius"),
        ("dbscan", {"min_points": 0}, "min_points"),
        ("kmeans", {"cluster_count": 0}, "cluster_count"),
        ("kmeans", {"max_iterations": 0}, "max_iterations"),
        ("hierarchical", {"linkage": "ward"}, "linkage"),
        ("spectral", {}, "algorithm"),
    ])
    def test_validate_clustering_config_errors(self, settings, algorithm, params, field):
        errors = ClusteringEngine(settings).validate_clustering_config(algorithm, params)
        assert field in errors

    @pytest.mark.parametrize("algorithm,params", [
        ("dbscan", {"radius": 2.0, "min_points": 2}),
        ("kmeans", {"cluster_count": 3}),
        ("hierarchical", {"linkage": "single"}),
        ("hierarchical", {}),
    ])
    def test_validate_clustering_config_ok(self, settings, algorithm, params):
        assert ClusteringEngine(settings).validate_clustering_config(algorithm, params) == {}


@pytest.mark.unit
class TestSummaries:
    """Test suite for summaries and output documents."""

    def test_dbscan_summary(self, settings, box_points):
        engine = ClusteringEngine(settings)
        result = engine.cluster(box_points, "dbscan", {"radius": 2.0, "min_points": 2})
        summary = engine.summarize(result, "dbscan")

        assert isinstance(summary, ClusteringSummary)
        assert summary.total_points == 1000
        assert summary.dimensions == 2
        assert summary.clusters == 3
        assert sum(summary.cluster_sizes) + summary.noise_points == 1000
        assert summary.params == {"radius": 2.0, "min_points": 2}
        assert "silhouette_score" in summary.quality_metrics
        assert summary.processing_time_ms >= 0.0

    def test_kmeans_output(self, settings, blob_points):
        points, _ = blob_points
        engine = ClusteringEngine(settings)
        result = engine.cluster(points, "kmeans", {"cluster_count": 3, "seed": 1})
        output = engine.to_output(result, "kmeans")

        assert len(output.clusters) == 3
        assert len(output.centroids) == 3
        assert output.summary.quality_metrics["iterations"] >= 1.0
        assert "inertia" in output.summary.quality_metrics
        assert output.summary.params["seed"] == 1

    def test_hierarchical_output(self, settings, small_box_points):
        engine = ClusteringEngine(settings)
        result = engine.cluster(small_box_points, "hierarchical", {"linkage": LinkagePolicy.MEAN})
        output = engine.to_output(result, "hierarchical", {"linkage": LinkagePolicy.MEAN})

        assert output.centroids is None
        assert output.summary.clusters == len(small_box_points)
        assert output.summary.params == {"linkage": "mean"}
        assert output.summary.quality_metrics == {}

    def test_output_is_json_serializable(self, settings, small_box_points):
        engine = ClusteringEngine(settings)
        result = engine.cluster(small_box_points, "dbscan", {"radius": 5.0, "min_points": 3})
        document = json.loads(engine.to_output(result, "dbscan").model_dump_json())
        assert document["summary"]["algorithm"] == "dbscan"
        assert len(document["clusters"]) == result.cluster_count()

    def test_quality_metrics_disabled(self, settings, box_points):
        settings.monitoring.compute_quality_metrics = False
        engine = ClusteringEngine(settings)
        result = engine.cluster(box_points, "dbscan", {"radius": 2.0, "min_points": 2})
        assert engine.summarize(result, "dbscan").quality_metrics == {}

    def test_noise_counted(self, settings, line_points):
        engine = ClusteringEngine(settings)
        result = engine.cluster(line_points, "dbscan", {"radius": 1.6, "min_points": 3}, use_spatial_index=False)
        summary = engine.summarize(result, "dbscan")
        assert summary.noise_points == 1
        assert summary.cluster_sizes == [3]
        assert np.sum(result.labels >= 0) == 3
