"""
Point Cloud Data Loader

This module reads the "before" and "after" scans from LAS/LAZ files.
"""

import laspy
import numpy as np
from pathlib import Path
from typing import Optional, List
from ..utils.logging import setup_logger
from ..utils.point_cloud_filters import create_classification_mask, describe_filter
from ..utils.export import detect_crs_from_laz

logger = setup_logger(__name__)


class PointCloudLoader:
    """
    A class for loading point cloud coordinates from LAS/LAZ files.

    Only X, Y and Z are kept; points may optionally be filtered by
    classification code before they reach the grid.
    """

    def __init__(self, *, ground_only: bool = False, classification_filter: Optional[List[int]] = None):
        """
        Initialize the point cloud loader.

        Args:
            ground_only: If True, keep only ground points (class 2)
            classification_filter: List of classification codes to keep
                (overrides ground_only)
        """
        self.ground_only = ground_only
        self.classification_filter = classification_filter

    @property
    def filters(self) -> bool:
        return self.ground_only or self.classification_filter is not None

    def load(self, file_path: str) -> dict:
        """
        Load a point cloud file and return its coordinates and metadata.

        Args:
            file_path: Path to the LAS/LAZ file

        Returns:
            dict with 'points' (N x 3 float64 array) and 'metadata'

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file format is unsupported
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        if file_path.suffix.lower() not in ['.las', '.laz']:
            raise ValueError(f"Unsupported file format: {file_path.suffix}")

        logger.info(f"Loading point cloud data from {file_path}")

        try:
            las = laspy.read(file_path)
        except Exception as e:
            logger.error(f"Error loading point cloud data from {file_path}: {e}")
            raise

        total_points = len(las.points)
        if self.filters and hasattr(las, 'classification'):
            mask = create_classification_mask(
                np.asarray(las.classification), self.ground_only, self.classification_filter
            )
        else:
            if self.filters:
                logger.warning("Classification not available; proceeding without filtering.")
            mask = np.ones(total_points, dtype=bool)

        points = np.column_stack([
            np.asarray(las.x, dtype=np.float64)[mask],
            np.asarray(las.y, dtype=np.float64)[mask],
            np.asarray(las.z, dtype=np.float64)[mask],
        ])

        if total_points > 0:
            logger.info(
                f"Kept {len(points)} of {total_points} points "
                f"({describe_filter(self.ground_only, self.classification_filter) if self.filters else 'no filter'})"
            )
        else:
            logger.warning(f"No points found in file: {file_path}")

        header = las.header
        metadata = {
            'file_path': str(file_path),
            'filename': file_path.name,
            'num_points': total_points,
            'num_loaded': len(points),
            'bounds': {
                'min_x': float(header.x_min),
                'max_x': float(header.x_max),
                'min_y': float(header.y_min),
                'max_y': float(header.y_max),
                'min_z': float(header.z_min),
                'max_z': float(header.z_max),
            },
            'crs': detect_crs_from_laz(str(file_path)),
        }

        return {'points': points, 'metadata': metadata}
