"""
data_models.py

Pydantic data models and enums for gridcluster.

Schema Design:
- Enums: algorithm and linkage names accepted by the engine, CLI and settings
- Output: run summary plus the exported nested-list clusters
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# ENUMS
# =============================================================================


class ClusterAlgorithm(str, Enum):
    """Supported clustering algorithms."""

    HIERARCHICAL = "hierarchical"
    DBSCAN = "dbscan"
    KMEANS = "kmeans"


class LinkagePolicy(str, Enum):
    """Cluster-to-cluster distance rule for hierarchical clustering."""

    MIN = "min"
    MAX = "max"
    MEAN = "mean"
    CENTROID = "centroid"

    @classmethod
    def _missing_(cls, value):
        aliases = {
            "single": cls.MIN,
            "complete": cls.MAX,
            "average": cls.MEAN,
        }
        if isinstance(value, str):
            lowered = value.lower()
            if lowered in aliases:
                return aliases[lowered]
            for member in cls:
                if member.value == lowered:
                    return member
        return None


# =============================================================================
# OUTPUT MODELS
# =============================================================================


class ClusteringSummary(BaseModel):
    """Summary of one clustering run."""

    algorithm: str = Field(..., description="Algorithm used for clustering")
    total_points: int = Field(..., ge=1, description="Number of input points")
    dimensions: int = Field(..., ge=1, description="Dimensionality k of the points")
    clusters: int = Field(..., ge=0, description="Number of clusters reported")
    noise_points: int = Field(default=0, ge=0, description="Points left as noise")
    cluster_sizes: List[int] = Field(default_factory=list, description="Members per cluster")
    quality_metrics: Dict[str, float] = Field(default_factory=dict)
    processing_time_ms: float = Field(..., ge=0.0)
    params: Dict[str, Any] = Field(default_factory=dict, description="Algorithm parameters used")

    @field_validator("algorithm")
    @classmethod
    def validate_algorithm(cls, v: str) -> str:
        """Ensure the algorithm name is one of the supported ones."""
        return ClusterAlgorithm(v.lower()).value


class ClusteringOutput(BaseModel):
    """Document written by the CLI: summary plus exported clusters."""

    summary: ClusteringSummary
    clusters: List[List[List[float]]] = Field(
        default_factory=list,
        description="One entry per cluster, each a list of member coordinates",
    )
    centroids: Optional[List[List[float]]] = Field(None, description="Centroids (kmeans only)")
