"""
Ground cells and per-cell registration.

A cell collects the points of both scans that fall inside one square of the
ground grid. Registering a cell turns its two point subsets into a single
displacement vector at the cell centre.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

import numpy as np

from ..alignment.registration import RegisterFn, RegistrationError, check_transform
from ..utils.logging import setup_logger

logger = setup_logger(__name__)

# Transforms with a smaller determinant are treated as singular
MIN_DETERMINANT = 1e-12


class Order(Enum):
    """Which scan a point set belongs to."""
    BEFORE = "before"
    AFTER = "after"


class CellStatus(Enum):
    """Outcome of registering one cell."""
    REGISTERED = "registered"
    SKIPPED = "skipped"
    FAILED = "failed"


class _PointBuffer:
    """Append-only (N x 3) point storage that concatenates lazily."""

    __slots__ = ("_chunks", "_size")

    def __init__(self):
        self._chunks: List[np.ndarray] = []
        self._size = 0

    def append(self, points: np.ndarray) -> None:
        if len(points):
            self._chunks.append(points)
            self._size += len(points)

    def array(self) -> np.ndarray:
        if not self._chunks:
            return np.empty((0, 3), dtype=np.float64)
        if len(self._chunks) > 1:
            self._chunks = [np.concatenate(self._chunks, axis=0)]
        return self._chunks[0]

    def __len__(self) -> int:
        return self._size


class Cell:
    """
    One square of the ground grid and the point data inside it.

    Attributes:
        x: Integer cell column
        y: Integer cell row
        cell_size: Side length of the cell in data units
        vector: Displacement (3,) at the cell centre, None until registered
    """

    def __init__(self, x: int, y: int, cell_size: float):
        self.x = x
        self.y = y
        self.cell_size = cell_size
        self.vector: Optional[np.ndarray] = None
        self._before = _PointBuffer()
        self._after = _PointBuffer()

    def append(self, points: np.ndarray, order: Order) -> None:
        """Append an (N x 3) block of points to the subset selected by order."""
        buffer = self._before if Order(order) is Order.BEFORE else self._after
        buffer.append(np.asarray(points, dtype=np.float64).reshape(-1, 3))

    @property
    def before(self) -> np.ndarray:
        return self._before.array()

    @property
    def after(self) -> np.ndarray:
        return self._after.array()

    @property
    def n_before(self) -> int:
        return len(self._before)

    @property
    def n_after(self) -> int:
        return len(self._after)

    def is_eligible(self, min_points: int) -> bool:
        return self.n_before >= min_points and self.n_after >= min_points

    def center(self, z: float = 0.0) -> np.ndarray:
        """Homogeneous cell-centre point at elevation z."""
        return np.array([
            (self.x + 0.5) * self.cell_size,
            (self.y + 0.5) * self.cell_size,
            z,
            1.0,
        ])

    def register(self, min_points: int, register: RegisterFn, debug: bool = False) -> CellStatus:
        """
        Estimate the displacement of this cell between the two scans.

        The primitive maps the "after" set onto the "before" set; its inverse
        carries the cell centre (at the mean "before" elevation) forward in
        time, and the difference to the untransformed centre is stored as
        the displacement.

        Args:
            min_points: Minimum points required in each subset
            register: Registration primitive, register(fixed, moving) -> 4x4
            debug: Log the inverse transform and per-point displacements

        Returns:
            CellStatus describing the outcome. Failures leave vector as None.
        """
        self.vector = None

        if not self.is_eligible(min_points):
            logger.debug(
                f"Skipping cell {self.x}/{self.y}: "
                f"{self.n_before} before / {self.n_after} after points (< {min_points})"
            )
            return CellStatus.SKIPPED

        logger.info(f"Computing for cell {self.x}/{self.y}")
        before = self.before
        after = self.after

        try:
            transform = check_transform(register(before, after))
            inverse = self._invert(transform)
        except RegistrationError as e:
            logger.warning(f"Registration failed for cell {self.x}/{self.y}: {e}")
            return CellStatus.FAILED

        center = self.center(float(before[:, 2].mean()))
        self.vector = (inverse @ center - center)[:3]

        if debug:
            logger.info(f"Inverse transform for cell {self.x}/{self.y} =\n{inverse}")
            homogeneous = np.column_stack([before, np.ones(len(before))])
            moved = (homogeneous @ inverse.T - homogeneous)[:, :3]
            for p, d in zip(before, moved):
                logger.info(
                    f"Vec = ({p[0]}, {p[1]}, {p[2]}) -> ({d[0]}, {d[1]}, {d[2]})"
                )

        return CellStatus.REGISTERED

    @staticmethod
    def _invert(transform: np.ndarray) -> np.ndarray:
        try:
            if abs(np.linalg.det(transform)) < MIN_DETERMINANT:
                raise RegistrationError("Transform is near-singular")
            inverse = np.linalg.inv(transform)
        except np.linalg.LinAlgError as e:
            raise RegistrationError(f"Transform is singular: {e}") from e
        if not np.all(np.isfinite(inverse)):
            raise RegistrationError("Inverse transform is not finite")
        return inverse

    def __repr__(self) -> str:
        return f"Cell(x={self.x}, y={self.y}, before={self.n_before}, after={self.n_after})"
