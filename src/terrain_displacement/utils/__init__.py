"""
Utility Functions Module

This module provides common utility functions used across the project.
- Logging setup
- Configuration loading
- Point cloud filtering utilities
- GeoTIFF export of displacement fields
"""

from .logging import setup_logger, configure_package_logging
from .config import AppConfig, load_config
from .point_cloud_filters import create_classification_mask, describe_filter
from .export import (
    DEFAULT_CRS,
    detect_crs_from_laz,
    export_vector_field_to_geotiff,
)

__all__ = [
    "setup_logger",
    "configure_package_logging",
    "AppConfig",
    "load_config",
    "create_classification_mask",
    "describe_filter",
    "DEFAULT_CRS",
    "detect_crs_from_laz",
    "export_vector_field_to_geotiff",
]
