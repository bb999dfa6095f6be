"""
Rigid Coherent Point Drift Registration

Wraps pycpd's rigid CPD solver as a registration primitive. The moving set
is modelled as Gaussian mixture centroids that are fitted to the fixed set,
which makes CPD more tolerant of differing sampling between scans than
closest-point methods.
"""

from typing import Optional

import numpy as np
from pycpd import RigidRegistration

from ..utils.logging import setup_logger
from .registration import RegistrationError, check_transform, rigid_matrix, translation_matrix

logger = setup_logger(__name__)


class CPDRegistration:
    """
    Rigid (rotation + translation) CPD between two point sets.

    Both sets are shifted to the centroid of the fixed set before solving,
    then the solution is conjugated back into the input frame:

        T = Shift(c) @ T_local @ Shift(-c)

    Projected coordinates (UTM and similar) are therefore never fed to the
    solver directly.
    """

    def __init__(
        self,
        max_iterations: int = 100,
        tolerance: float = 1e-3,
        w: float = 0.0,
    ):
        """
        Initialize CPD parameters.

        Args:
            max_iterations: Maximum number of EM iterations.
            tolerance: Convergence tolerance on the change of the objective.
            w: Weight of the uniform outlier component, in [0, 1).
        """
        if not 0.0 <= w < 1.0:
            raise ValueError(f"w must be in [0, 1), got {w}")
        self.max_iterations = max_iterations
        self.tolerance = tolerance
        self.w = w
        self.last_iterations: Optional[int] = None

    def register(self, fixed: np.ndarray, moving: np.ndarray) -> np.ndarray:
        """
        Estimate the rigid transform mapping ``moving`` onto ``fixed``.

        Args:
            fixed: Fixed point set (N x 3).
            moving: Moving point set (M x 3).

        Returns:
            Homogeneous transformation matrix (4 x 4).

        Raises:
            RegistrationError: If the solver fails or yields a non-finite result.
        """
        fixed = np.asarray(fixed, dtype=np.float64)
        moving = np.asarray(moving, dtype=np.float64)
        if len(fixed) == 0 or len(moving) == 0:
            raise RegistrationError(
                f"CPD called with empty point set (fixed={len(fixed)}, moving={len(moving)})"
            )

        centroid = fixed.mean(axis=0)
        try:
            reg = RigidRegistration(
                X=fixed - centroid,
                Y=moving - centroid,
                scale=False,
                max_iterations=self.max_iterations,
                tolerance=self.tolerance,
                w=self.w,
            )
            reg.register()
        except (np.linalg.LinAlgError, ValueError, FloatingPointError) as e:
            raise RegistrationError(f"CPD solver failed: {e}") from e

        s, R, t = reg.get_registration_parameters()
        self.last_iterations = int(reg.iteration)
        if reg.iteration >= self.max_iterations:
            logger.warning(
                "CPD stopped at the iteration limit (%d) with objective change %.3e",
                self.max_iterations,
                float(reg.diff),
            )

        # pycpd applies row vectors on the left: TY = s * Y @ R + t
        local = rigid_matrix(s * np.asarray(R).T, np.asarray(t).ravel())
        transform = translation_matrix(centroid) @ local @ translation_matrix(-centroid)
        return check_transform(transform)

    __call__ = register
