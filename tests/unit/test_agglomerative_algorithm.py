"""
Unit tests for hierarchical (agglomerative) clustering.

Tests the HierarchicalClustering class including:
- Merge tree shape (2n - 1 nodes, n - 1 merges)
- Each linkage policy on hand-checked inputs
- Tie-breaking order
- Finest-cut query surface
"""

import numpy as np
import pytest

from gridcluster.core.agglomerative_algorithm import (
    ClusterNode,
    DistanceCache,
    HierarchicalClustering,
)
from gridcluster.core.base_clustering import ClusteringConfig
from gridcluster.core.point_set import PointSet
from gridcluster.core.spatial_index import SpatialIndex
from gridcluster.core.vector import Vector
from gridcluster.schemas.data_models import LinkagePolicy
from gridcluster.utils.error_handling import EmptyInputError, IndexOutOfRangeError


@pytest.fixture
def three_on_a_line():
    """Points 0, 1, 2 on a line: the two unit gaps tie."""
    return PointSet([Vector(0.0), Vector(1.0), Vector(2.0)])


@pytest.mark.unit
class TestClusterNode:
    """Test suite for merge tree nodes."""

    def test_leaf(self):
        leaf = ClusterNode(id=4)
        assert leaf.is_leaf
        assert leaf.size == 1
        assert leaf.pair_id == (4, 4)
        assert leaf.sub_ids == (4,)

    def test_internal(self):
        node = ClusterNode(id=7, size=3, left=2, right=5)
        assert not node.is_leaf
        assert node.pair_id == (2, 5)
        assert node.sub_ids == (2, 5)


@pytest.mark.unit
class TestDistanceCache:
    """Test suite for the distance cache."""

    def test_point_distances(self):
        cache = DistanceCache(np.array([[0.0, 0.0], [3.0, 4.0], [6.0, 8.0]]))
        assert cache.get(0, 1) == 5.0
        assert cache.get(2, 0) == 10.0
        assert cache.get(1, 1) == 0.0
        assert len(cache) == 3

    def test_cluster_distances(self):
        cache = DistanceCache(np.array([[0.0], [1.0]]))
        assert cache.get(2, 0) is None
        assert (0, 2) not in cache
        cache.put(2, 0, 1.5)
        assert cache.get(0, 2) == 1.5
        assert (2, 0) in cache
        assert len(cache) == 2


@pytest.mark.unit
class TestHierarchicalClustering:
    """Test suite for hierarchical clustering."""

    def test_tree_shape(self, small_box_points):
        result = HierarchicalClustering(PointSet(small_box_points))
        n = len(small_box_points)

        assert result.cluster_count() == n
        assert len(result.nodes) == 2 * n - 1
        assert result.internal_node_count == n - 1
        assert len(result.merges) == n - 1
        assert result.root.size == n
        assert sorted(result.members(result.root.id).tolist()) == list(range(n))

    def test_each_node_merged_once(self, small_box_points):
        result = HierarchicalClustering(PointSet(small_box_points))
        children = [child for left, right, _, _ in result.merges for child in (left, right)]
        assert len(children) == len(set(children))
        assert result.root.id not in children

    def test_sizes_add_up(self, small_box_points):
        result = HierarchicalClustering(PointSet(small_box_points), LinkagePolicy.MEAN)
        for node in result.nodes[len(small_box_points):]:
            assert node.size == result.nodes[node.left].size + result.nodes[node.right].size
            assert len(result.members(node.id)) == node.size

    def test_finest_cut(self, small_box_points):
        point_set = PointSet(small_box_points)
        result = HierarchicalClustering(point_set)

        for i in (0, 17, 99):
            assert result.points_in_cluster(i) == [point_set.get(i)]
        assert result.labels.tolist() == list(range(point_set.n))

        exported = result.export()
        assert len(exported) == point_set.n
        assert exported[3] == [point_set.get(3).to_list()]

    def test_cluster_index_out_of_range(self, three_on_a_line):
        result = HierarchicalClustering(three_on_a_line)
        with pytest.raises(IndexOutOfRangeError):
            result.points_in_cluster(3)

    def test_tie_break_is_first_pair(self, three_on_a_line):
        result = HierarchicalClustering(three_on_a_line, LinkagePolicy.MIN)
        assert result.merges[0] == (0, 1, 1.0, 2)
        assert result.merges[1] == (2, 3, 1.0, 3)

    @pytest.mark.parametrize("linkage,expected", [
        (LinkagePolicy.MIN, 1.0),
        (LinkagePolicy.MAX, 2.0),
        # (2 + 1) / (2 + 1)
        (LinkagePolicy.MEAN, 1.0),
        (LinkagePolicy.CENTROID, 1.5),
    ])
    def test_linkage_distance(self, three_on_a_line, linkage, expected):
        result = HierarchicalClustering(three_on_a_line, linkage)
        assert result.merges[1][2] == pytest.approx(expected)

    def test_mean_linkage_normalization(self):
        # two pairs: {0, 1} and {10, 11}; leaf-pair distances sum to 40
        point_set = PointSet([Vector(0.0), Vector(1.0), Vector(10.0), Vector(11.0)])
        result = HierarchicalClustering(point_set, LinkagePolicy.MEAN)
        assert result.merges[-1][2] == pytest.approx(40.0 / 4)

    @pytest.mark.parametrize("linkage", [LinkagePolicy.MIN, LinkagePolicy.MAX])
    def test_merge_distances_never_decrease(self, small_box_points, linkage):
        result = HierarchicalClustering(PointSet(small_box_points), linkage)
        distances = [distance for _, _, distance, _ in result.merges]
        assert all(b >= a - 1e-12 for a, b in zip(distances, distances[1:]))

    def test_single_linkage_separates_boxes(self, small_box_points, box_of):
        result = HierarchicalClustering(PointSet(small_box_points), LinkagePolicy.MIN)

        # undoing the last two merges leaves three clusters
        previous = result.nodes[-2]
        top = {result.root.left, result.root.right, previous.left, previous.right}
        top.discard(previous.id)

        boxes = [
            {box_of(small_box_points[i]) for i in result.members(node_id)}
            for node_id in top
        ]
        assert len(top) == 3
        assert all(len(b) == 1 for b in boxes)
        assert set().union(*boxes) == {0, 1, 2}

    def test_linkage_from_string(self, three_on_a_line):
        assert HierarchicalClustering(three_on_a_line, "complete").linkage is LinkagePolicy.MAX
        assert HierarchicalClustering(three_on_a_line, "Centroid").linkage is LinkagePolicy.CENTROID

    def test_unknown_linkage(self, three_on_a_line):
        with pytest.raises(ValueError):
            HierarchicalClustering(three_on_a_line, "ward")

    def test_from_config(self, three_on_a_line):
        config = ClusteringConfig(algorithm_name="hierarchical", params={"linkage": "max"})
        result = HierarchicalClustering.from_config(three_on_a_line, config)
        assert result.linkage is LinkagePolicy.MAX

    def test_single_point(self):
        result = HierarchicalClustering(PointSet([Vector(1.0, 2.0)]))
        assert result.cluster_count() == 1
        assert len(result.nodes) == 1
        assert result.merges == []
        assert result.root.is_leaf

    def test_works_on_spatial_index(self, small_box_points):
        result = HierarchicalClustering(SpatialIndex(small_box_points))
        assert result.cluster_count() == len(small_box_points)
        assert len(result.nodes) == 2 * len(small_box_points) - 1

    def test_empty_point_set(self):
        with pytest.raises(EmptyInputError):
            HierarchicalClustering(None)

    def test_no_quality_metrics_for_singletons(self, three_on_a_line):
        assert HierarchicalClustering(three_on_a_line).quality_metrics() == {}
