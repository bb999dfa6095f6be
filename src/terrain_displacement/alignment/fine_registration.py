"""
ICP Registration Implementation

This module implements the Iterative Closest Point (ICP) algorithm as an
alternative per-cell registration primitive. It is faster than CPD on dense
cells but needs the two scans to overlap closely.
"""

from typing import Optional, Tuple
import time

import numpy as np
from sklearn.neighbors import NearestNeighbors

from ..utils.logging import setup_logger
from .registration import RegistrationError, check_transform, rigid_matrix

logger = setup_logger(__name__)


class ICPRegistration:
    """
    Implementation of ICP algorithm for point cloud registration.

    The ICP algorithm iteratively:
    1. Finds closest point correspondences
    2. Estimates optimal transformation (rotation + translation)
    3. Applies transformation to source points
    4. Repeats until convergence
    """

    def __init__(
        self,
        max_iterations: int = 100,
        tolerance: float = 1e-6,
        max_correspondence_distance: float = 1.0,
    ):
        """
        Initialize ICP parameters.

        Args:
            max_iterations: Maximum number of ICP iterations.
            tolerance: Convergence tolerance on change in mean squared error.
            max_correspondence_distance: Maximum distance for point correspondences.
        """
        self.max_iterations = max_iterations
        self.tolerance = tolerance
        self.max_correspondence_distance = max_correspondence_distance
        self.last_iterations: int = 0

    def register(self, fixed: np.ndarray, moving: np.ndarray) -> np.ndarray:
        """
        Registration primitive interface: transform mapping ``moving`` onto ``fixed``.

        Raises:
            RegistrationError: If no usable alignment could be found.
        """
        fixed = np.asarray(fixed, dtype=np.float64)
        moving = np.asarray(moving, dtype=np.float64)
        _, transform, final_error = self.align_point_clouds(source=moving, target=fixed)
        if self.last_iterations == 0 or not np.isfinite(final_error):
            raise RegistrationError("ICP found too few valid correspondences")
        return check_transform(transform)

    __call__ = register

    def align_point_clouds(
        self,
        source: np.ndarray,
        target: np.ndarray,
        initial_transform: Optional[np.ndarray] = None,
    ) -> Tuple[np.ndarray, np.ndarray, float]:
        """
        Align source point cloud to target using ICP.

        Args:
            source: Source point cloud (N x 3).
            target: Target point cloud (M x 3).
            initial_transform: Initial transformation matrix (4 x 4) or None.

        Returns:
            Tuple of (aligned_source_points, transformation_matrix, final_error).
        """
        n_src = len(source)
        n_tgt = len(target)
        self.last_iterations = 0
        logger.debug(
            "Starting ICP alignment with %d source points and %d target points.",
            n_src,
            n_tgt,
        )

        if initial_transform is None:
            transform = np.eye(4)
        else:
            transform = initial_transform.copy()

        if n_src == 0 or n_tgt == 0:
            logger.warning(
                "ICP called with empty source or target (source=%d, target=%d); "
                "returning initial transform and infinite error.",
                n_src,
                n_tgt,
            )
            return source.copy(), transform, float("inf")

        current_source = self.apply_transformation(source, transform)
        previous_error = float("inf")

        # Build the nearest-neighbor search structure for the target point cloud once
        nbrs = NearestNeighbors(n_neighbors=1, algorithm="kd_tree").fit(target)

        icp_start = time.time()
        n_iterations = 0

        for iteration in range(self.max_iterations):
            correspondences, distances = self.find_correspondences(current_source, nbrs=nbrs)

            # Filter out correspondences that exceed the max distance
            valid_mask = distances < self.max_correspondence_distance
            if np.sum(valid_mask) < 3:  # Need at least 3 points to define a plane
                logger.warning("Not enough valid correspondences found. Stopping ICP.")
                break

            valid_source = current_source[valid_mask]
            valid_target = target[correspondences[valid_mask]]

            delta_transform = self.estimate_transformation(valid_source, valid_target)
            transform = delta_transform @ transform

            # Apply the cumulative transformation to the ORIGINAL source cloud
            current_source = self.apply_transformation(source, transform)

            current_error = float(np.mean(distances[valid_mask] ** 2))
            logger.debug("Iteration %d: MSE=%.6f", iteration + 1, current_error)
            n_iterations = iteration + 1

            if abs(previous_error - current_error) < self.tolerance:
                break

            previous_error = current_error
        else:
            logger.debug("ICP did not converge after %d iterations.", self.max_iterations)

        self.last_iterations = n_iterations
        final_error = self.compute_registration_error(current_source, nbrs)
        logger.debug(
            "ICP finished in %.4f s (%d iterations). Final RMSE: %.6f",
            time.time() - icp_start,
            n_iterations,
            final_error,
        )

        return current_source, transform, final_error

    def find_correspondences(
        self,
        source: np.ndarray,
        target: Optional[np.ndarray] = None,
        nbrs: Optional[NearestNeighbors] = None,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Find closest point correspondences between source and target.

        Args:
            source: Source point cloud (N x 3).
            target: Target point cloud (M x 3). Only used if `nbrs` is None.
            nbrs: Optional pre-built NearestNeighbors instance for the target.

        Returns:
            Tuple of (correspondence_indices, distances).
        """
        if nbrs is None:
            if target is None:
                raise ValueError("Either 'target' or a pre-built 'nbrs' must be provided.")
            nbrs = NearestNeighbors(n_neighbors=1, algorithm="kd_tree").fit(target)

        distances, indices = nbrs.kneighbors(source)
        return indices.ravel(), distances.ravel()

    def estimate_transformation(
        self,
        source_points: np.ndarray,
        target_points: np.ndarray,
    ) -> np.ndarray:
        """
        Estimate optimal rigid transformation between corresponding point sets.

        Args:
            source_points: Source point cloud points (N x 3).
            target_points: Corresponding target point cloud points (N x 3).

        Returns:
            Transformation matrix (4 x 4).
        """
        source_centroid = np.mean(source_points, axis=0)
        target_centroid = np.mean(target_points, axis=0)

        H = (source_points - source_centroid).T @ (target_points - target_centroid)
        U, _, Vt = np.linalg.svd(H)
        R = Vt.T @ U.T

        # Ensure proper rotation (det(R) should be 1)
        if np.linalg.det(R) < 0:
            Vt[-1, :] *= -1
            R = Vt.T @ U.T

        t = target_centroid - R @ source_centroid
        return rigid_matrix(R, t)

    def apply_transformation(
        self,
        points: np.ndarray,
        transform: np.ndarray,
    ) -> np.ndarray:
        """Apply a 4 x 4 transformation matrix to an (N x 3) point array."""
        if points.size == 0:
            return points
        return points @ transform[:3, :3].T + transform[:3, 3]

    def compute_registration_error(
        self,
        source: np.ndarray,
        nbrs: NearestNeighbors,
    ) -> float:
        """
        Compute the registration error (RMSE) of an aligned source cloud.

        Returns:
            Registration error as RMSE, or inf when no correspondence is valid.
        """
        if source.size == 0:
            return float("inf")
        _, distances = self.find_correspondences(source, nbrs=nbrs)
        valid_mask = distances < self.max_correspondence_distance

        if np.sum(valid_mask) == 0:
            logger.warning("No valid correspondences found for error computation.")
            return float("inf")

        return float(np.sqrt(np.mean(distances[valid_mask] ** 2)))
