"""
Shared interface for rigid point-set registration primitives.

A primitive is any callable ``register(fixed, moving)`` taking two (N x 3)
point arrays and returning the 4 x 4 homogeneous transform that maps the
moving set onto the fixed set. Failure to produce a usable transform is
signalled with RegistrationError.
"""

from __future__ import annotations

from typing import Callable

import numpy as np

RegisterFn = Callable[[np.ndarray, np.ndarray], np.ndarray]


class RegistrationError(RuntimeError):
    """Raised when a registration primitive fails for one pair of point sets."""


def rigid_matrix(R: np.ndarray, t: np.ndarray) -> np.ndarray:
    """Assemble a 4 x 4 homogeneous transform from rotation and translation."""
    transform = np.eye(4)
    transform[:3, :3] = R
    transform[:3, 3] = t
    return transform


def translation_matrix(offset: np.ndarray) -> np.ndarray:
    return rigid_matrix(np.eye(3), np.asarray(offset, dtype=np.float64))


def check_transform(transform: np.ndarray) -> np.ndarray:
    """
    Validate the output of a registration primitive.

    Raises:
        RegistrationError: If the transform is not a finite 4 x 4 matrix.
    """
    transform = np.asarray(transform, dtype=np.float64)
    if transform.shape != (4, 4):
        raise RegistrationError(f"Expected 4x4 transform, got shape {transform.shape}")
    if not np.all(np.isfinite(transform)):
        raise RegistrationError("Registration produced a non-finite transform")
    return transform
