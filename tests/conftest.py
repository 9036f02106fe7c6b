"""
Pytest configuration and shared fixtures for gridcluster tests.

This module provides:
- Seeded random generators
- Box and blob point generators with known structure
- Settings fixtures that keep the global ConfigManager clean
"""

import os

import numpy as np
import pytest

from gridcluster.config.settings_loader import ConfigManager, Settings
from gridcluster.core.vector import Vector
from gridcluster.utils.sampling import DEFAULT_BOXES, sample_boxes

# Set test environment variables
os.environ["TESTING"] = "true"


# =============================================================================
# Test Data Generators
# =============================================================================

@pytest.fixture
def rng():
    """Seeded generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def box_points():
    """1000 points from three well separated 2-d boxes."""
    return sample_boxes(DEFAULT_BOXES, 1000, np.random.default_rng(7))


@pytest.fixture
def small_box_points():
    """100 points from the same three boxes."""
    return sample_boxes(DEFAULT_BOXES, 100, np.random.default_rng(11))


@pytest.fixture
def blob_points():
    """
    Generate points with clear cluster structure.

    Creates 3 tight Gaussian blobs of 50 points each:
    - Blob 0: centered at (0, 0)
    - Blob 1: centered at (10, 10)
    - Blob 2: centered at (20, 0)

    Returns:
        (list of Vectors, array of true blob labels)
    """
    generator = np.random.default_rng(3)
    centers = np.array([[0.0, 0.0], [10.0, 10.0], [20.0, 0.0]])
    n_per_blob = 50

    coordinates = np.vstack([
        center + generator.normal(scale=0.5, size=(n_per_blob, 2))
        for center in centers
    ])
    labels = np.repeat(np.arange(len(centers)), n_per_blob)
    return [Vector.from_array(row) for row in coordinates], labels


@pytest.fixture
def line_points():
    """Four collinear 1-d points: a dense run of three and one straggler."""
    return [Vector(0.0), Vector(1.0), Vector(2.0), Vector(3.5)]


@pytest.fixture
def box_of():
    """Map a coordinate back to the index of the default box containing it."""
    def lookup(point):
        for i, box in enumerate(DEFAULT_BOXES):
            if all(lo <= value <= hi for (lo, hi), value in zip(box, point)):
                return i
        return -1
    return lookup


# =============================================================================
# Settings
# =============================================================================

@pytest.fixture
def settings():
    """Default settings with the per-run memory snapshot turned off."""
    result = Settings()
    result.monitoring.track_memory_usage = False
    return result


@pytest.fixture
def clean_config_manager():
    """Reset the cached global settings around a test."""
    ConfigManager._settings = None
    yield ConfigManager
    ConfigManager._settings = None


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests for individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests for component interactions"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take >1 second"
    )
