"""
settings_loader.py

Configuration management for gridcluster.
Loads and validates settings from YAML configuration with environment variable substitution.

Features:
- YAML configuration loading with validation
- Environment variable substitution (${VAR_NAME} syntax)
- Singleton pattern for global settings access
- Type-safe configuration with Pydantic models
- Defaults when no configuration file is present
"""

import os
import re
import logging
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from gridcluster.schemas.data_models import ClusterAlgorithm, LinkagePolicy
from gridcluster.utils.error_handling import ConfigurationError

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models (Pydantic)
# =============================================================================

class ServiceSettings(BaseModel):
    """General service settings."""
    name: str = Field(default="gridcluster", description="Service name used in log context")
    version: str = Field(default="1.0.0", description="Service version")
    environment: str = Field(default="production", description="Environment (development, production)")


class PointSetSettings(BaseModel):
    """Point set and spatial index settings."""
    bound_slack: float = Field(default=1.0 + 1.0e-6, ge=1.0, description="Ratio applied to each bound about its midpoint")
    degenerate_padding: float = Field(default=0.5, gt=0.0, description="Absolute margin for zero-span dimensions")
    use_spatial_index: bool = Field(default=True, description="Build a grid index for range search")


class HierarchicalSettings(BaseModel):
    """Hierarchical clustering settings."""
    linkage: LinkagePolicy = Field(default=LinkagePolicy.MIN, description="Linkage policy (min, max, mean, centroid)")


class DensityScanSettings(BaseModel):
    """DBSCAN settings."""
    radius: float = Field(default=1.0, ge=0.0, description="Neighborhood radius")
    min_points: int = Field(default=2, ge=1, description="Neighbors needed to seed a cluster")


class VectorQuantizationSettings(BaseModel):
    """K-Means settings."""
    cluster_count: int = Field(default=8, ge=1, description="Number of centroids")
    seed: Optional[int] = Field(default=None, description="Random seed (null = fresh entropy)")
    max_iterations: Optional[int] = Field(default=None, ge=1, description="Iteration cap (null = until stable)")


class ClusteringSettings(BaseModel):
    """Clustering algorithm selection and per-algorithm settings."""
    default_algorithm: ClusterAlgorithm = Field(default=ClusterAlgorithm.DBSCAN, description="Algorithm used when none is given")
    point_set: PointSetSettings = Field(default_factory=PointSetSettings)
    hierarchical: HierarchicalSettings = Field(default_factory=HierarchicalSettings)
    dbscan: DensityScanSettings = Field(default_factory=DensityScanSettings)
    kmeans: VectorQuantizationSettings = Field(default_factory=VectorQuantizationSettings)


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format (json or console)")
    file: Optional[str] = Field(default=None, description="Optional rotating log file path")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level '{v}'")
        return level

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v not in ("json", "console"):
            raise ValueError(f"Unknown log format '{v}'")
        return v


class MonitoringSettings(BaseModel):
    """Performance tracking configuration."""
    track_clustering_time: bool = Field(default=True, description="Log duration of each clustering run")
    track_memory_usage: bool = Field(default=True, description="Log a CPU/memory snapshot after each run")
    compute_quality_metrics: bool = Field(default=True, description="Compute silhouette and Davies-Bouldin scores")


class Settings(BaseModel):
    """Root configuration model."""
    service: ServiceSettings = Field(default_factory=ServiceSettings)
    clustering: ClusteringSettings = Field(default_factory=ClusteringSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)


# =============================================================================
# Configuration Manager (Singleton)
# =============================================================================

class ConfigManager:
    """
    Singleton configuration manager that loads and caches settings.

    Features:
    - Loads YAML configuration from file
    - Substitutes environment variables using ${VAR_NAME} syntax
    - Validates configuration using Pydantic models
    - Provides global access to settings
    """

    _instance: Optional['ConfigManager'] = None
    _settings: Optional[Settings] = None

    def __new__(cls):
        """Ensure singleton pattern."""
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
        return cls._instance

    @classmethod
    def load_config(cls, config_path: Optional[str] = None) -> Settings:
        """
        Load configuration from YAML file with environment variable substitution.

        Args:
            config_path: Path to configuration file. If None, searches the
                default locations and falls back to built-in defaults.

        Returns:
            Settings object with validated configuration

        Raises:
            ConfigurationError: If an explicit file is missing or the
                configuration is invalid
        """
        if cls._settings is not None:
            return cls._settings

        if config_path is None:
            possible_paths = [
                Path(os.getenv("GRIDCLUSTER_CONFIG", "config/settings.yaml")),
                Path.cwd() / "config" / "settings.yaml",
            ]
            config_path_obj = next((p for p in possible_paths if p.exists()), None)

            if config_path_obj is None:
                logger.warning(
                    f"Configuration file not found in any of: {[str(p) for p in possible_paths]}; "
                    "using defaults"
                )
                cls._settings = cls._apply_env_overrides(Settings())
                return cls._settings
        else:
            config_path_obj = Path(config_path)
            if not config_path_obj.exists():
                raise ConfigurationError(
                    f"Configuration file not found: {config_path}",
                    details={"path": str(config_path)},
                )

        logger.info(f"Loading configuration from: {config_path_obj}")

        try:
            with open(config_path_obj, 'r') as f:
                raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Failed to load YAML configuration: {e}")
            raise ConfigurationError(f"Invalid YAML configuration: {e}") from e

        config_dict = cls._substitute_env_vars(raw_config)

        try:
            settings = Settings(**config_dict)
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {e}")
            raise ConfigurationError(f"Invalid configuration: {e}") from e

        cls._settings = cls._apply_env_overrides(settings)
        logger.info("Configuration loaded and validated successfully")
        return cls._settings

    @classmethod
    def get_settings(cls) -> Settings:
        """
        Get cached settings. Loads from default path if not already loaded.

        Returns:
            Settings object
        """
        if cls._settings is None:
            cls.load_config()
        return cls._settings

    @classmethod
    def _apply_env_overrides(cls, settings: Settings) -> Settings:
        if os.getenv("LOG_LEVEL"):
            settings.logging = LoggingSettings(
                level=os.getenv("LOG_LEVEL", "INFO"),
                format=settings.logging.format,
                file=settings.logging.file,
            )
        return settings

    @classmethod
    def _substitute_env_vars(cls, config: Any) -> Any:
        """
        Recursively substitute environment variables in configuration.

        Supports ${VAR_NAME} and ${VAR_NAME:default_value} syntax.

        Args:
            config: Configuration dictionary or value

        Returns:
            Configuration with substituted values
        """
        if isinstance(config, dict):
            return {k: cls._substitute_env_vars(v) for k, v in config.items()}
        elif isinstance(config, list):
            return [cls._substitute_env_vars(item) for item in config]
        elif isinstance(config, str):
            # Match ${VAR_NAME} or ${VAR_NAME:default}
            pattern = r'\$\{([^}:]+)(?::([^}]*))?\}'

            def replace_var(match):
                var_name = match.group(1)
                default_value = match.group(2) if match.group(2) is not None else ""
                return os.getenv(var_name, default_value)

            return re.sub(pattern, replace_var, config)
        else:
            return config

    @classmethod
    def reload_config(cls, config_path: Optional[str] = None) -> Settings:
        """
        Reload configuration from file.

        Args:
            config_path: Path to configuration file

        Returns:
            Reloaded Settings object
        """
        cls._settings = None
        return cls.load_config(config_path)


# =============================================================================
# Convenience Functions
# =============================================================================

def get_settings() -> Settings:
    """
    Get application settings (convenience function).

    Returns:
        Settings object
    """
    return ConfigManager.get_settings()
