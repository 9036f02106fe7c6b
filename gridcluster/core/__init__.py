"""
Core clustering module for gridcluster.

Exports:
- Vector, Bound: point algebra and per-dimension intervals
- PointSet, SpatialIndex: point containers with range search
- ClusteringEngine: Main orchestration class
- ClusterResult: Base class for algorithm results
- ClusteringConfig: Configuration container
- Individual algorithm implementations
"""

from gridcluster.core.vector import Vector
from gridcluster.core.bound import Bound
from gridcluster.core.point_set import PointSet
from gridcluster.core.spatial_index import SpatialIndex
from gridcluster.core.base_clustering import (
    ClusterResult,
    ClusteringConfig,
)
from gridcluster.core.agglomerative_algorithm import HierarchicalClustering
from gridcluster.core.dbscan_algorithm import DensityScan
from gridcluster.core.kmeans_algorithm import VectorQuantizer
from gridcluster.core.clustering_engine import ClusteringEngine

__all__ = [
    "Vector",
    "Bound",
    "PointSet",
    "SpatialIndex",
    "ClusteringEngine",
    "ClusterResult",
    "ClusteringConfig",
    "HierarchicalClustering",
    "DensityScan",
    "VectorQuantizer",
]
