"""
Point Cloud Data Preprocessing Module

This module loads the two scans to compare and reduces them to the X, Y, Z
coordinates the grid consumes.
"""

from .loader import PointCloudLoader

__all__ = [
    "PointCloudLoader",
]
