"""
Sparse ground grid for per-cell displacement estimation.

Points of both scans are binned into square cells keyed by their integer
ground coordinates. Only populated cells are stored, so the grid works for
coordinates far from the origin and on both sides of it.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Tuple

import numpy as np

from ..alignment.registration import RegisterFn
from ..utils.logging import setup_logger
from .cell import Cell, CellStatus, Order
from .cell_key import INT32_MAX, INT32_MIN, CellKey

logger = setup_logger(__name__)

DEFAULT_MIN_POINTS = 250


@dataclass
class RegistrationSummary:
    """Counts of per-cell outcomes from one Grid.register_all pass."""
    registered: int = 0
    skipped: int = 0
    failed: int = 0
    elapsed_s: float = 0.0

    @property
    def total(self) -> int:
        return self.registered + self.skipped + self.failed


def _as_xyz(points) -> np.ndarray:
    """Coerce point input to an (N, 3) float64 array of x, y, z."""
    arr = np.asarray(points)
    if arr.dtype.names:
        names = {n.lower(): n for n in arr.dtype.names}
        try:
            cols = [arr[names[c]] for c in ("x", "y", "z")]
        except KeyError:
            raise ValueError(f"Structured points need X, Y and Z fields, got {arr.dtype.names}") from None
        return np.column_stack(cols).astype(np.float64)

    arr = np.asarray(arr, dtype=np.float64)
    if arr.size == 0:
        return arr.reshape(0, 3)
    if arr.ndim != 2 or arr.shape[1] < 3:
        raise ValueError(f"Expected Nx3 array, got shape {arr.shape}")
    return arr[:, :3]


class Grid:
    """
    Mapping from ground cells to the points of both scans inside them.

    Typical use:
        grid = Grid(cell_size=100.0)
        grid.insert(before_points, Order.BEFORE)
        grid.insert(after_points, Order.AFTER)
        grid.calc_limits()
        grid.register_all(min_points=250)

    Attributes:
        cell_size: Side length of every cell in data units
    """

    def __init__(self, cell_size: float):
        cell_size = float(cell_size)
        if not np.isfinite(cell_size) or cell_size <= 0:
            raise ValueError(f"cell_size must be a positive number, got {cell_size}")
        self.cell_size = cell_size
        self._cells: Dict[CellKey, Cell] = {}
        self._limits: Optional[Tuple[int, int, int, int]] = None

    # ------------------------------------------------------------------
    # Binning
    # ------------------------------------------------------------------

    def insert(self, points, order: Order) -> int:
        """
        Bin points into cells.

        Each point lands in cell (floor(x / cell_size), floor(y / cell_size)).
        Within a cell, points keep the order in which they were inserted.

        Args:
            points: Nx3 array-like of [X, Y, Z], or a structured array with
                X/Y/Z fields
            order: Scan the points belong to (Order or its value, "before"/"after")

        Returns:
            Number of points inserted

        Raises:
            ValueError: On an unknown order, non-finite coordinates or cell indices outside
                the signed 32-bit range
        """
        order = Order(order)
        pts = _as_xyz(points)
        if len(pts) == 0:
            return 0
        if not np.all(np.isfinite(pts)):
            raise ValueError("Point coordinates must be finite")

        cx = np.floor(pts[:, 0] / self.cell_size)
        cy = np.floor(pts[:, 1] / self.cell_size)
        if (min(cx.min(), cy.min()) < INT32_MIN) or (max(cx.max(), cy.max()) > INT32_MAX):
            raise ValueError("Cell index outside the signed 32-bit range; use a larger cell_size")

        indices = np.column_stack([cx, cy]).astype(np.int64)
        uniq, inv = np.unique(indices, axis=0, return_inverse=True)
        inv = inv.reshape(-1)

        # Group point indices per cell while preserving input order
        by_cell = np.argsort(inv, kind="stable")
        bounds = np.cumsum(np.bincount(inv, minlength=len(uniq)))[:-1]
        for (x, y), idx in zip(uniq.tolist(), np.split(by_cell, bounds)):
            self._get_or_create(x, y).append(pts[idx], order)

        logger.debug(f"Inserted {len(pts)} {order.value} points into {len(uniq)} cells")
        return len(pts)

    def _get_or_create(self, x: int, y: int) -> Cell:
        key = CellKey(x, y)
        cell = self._cells.get(key)
        if cell is None:
            cell = Cell(x, y, self.cell_size)
            self._cells[key] = cell
        return cell

    # ------------------------------------------------------------------
    # Extent
    # ------------------------------------------------------------------

    def calc_limits(self) -> None:
        """
        Compute the tightest rectangle of cell coordinates holding every cell.

        An empty grid yields a zero-sized rectangle at the origin.
        """
        if not self._cells:
            self._limits = (0, 0, 0, 0)
            logger.warning("Grid has no populated cells; raster extent is empty")
            return

        xs = [k.x for k in self._cells]
        ys = [k.y for k in self._cells]
        x_min, y_min = min(xs), min(ys)
        self._limits = (x_min, y_min, max(xs) - x_min + 1, max(ys) - y_min + 1)
        logger.info(
            f"Grid limits: origin=({self._limits[0]}, {self._limits[1]}) "
            f"size={self._limits[2]}x{self._limits[3]} cells, {len(self._cells)} populated"
        )

    @property
    def limits(self) -> Tuple[int, int, int, int]:
        """(x_origin, y_origin, x_size, y_size) in cell units."""
        if self._limits is None:
            raise RuntimeError("Grid limits are undefined; call calc_limits() first")
        return self._limits

    @property
    def x_origin(self) -> int:
        return self.limits[0]

    @property
    def y_origin(self) -> int:
        return self.limits[1]

    @property
    def x_size(self) -> int:
        return self.limits[2]

    @property
    def y_size(self) -> int:
        return self.limits[3]

    def geotransform(self) -> Tuple[float, float, float, float, float, float]:
        """
        GDAL-style geotransform of the raster covering the grid extent.

        Rows run from the southern edge upwards, matching the row order of
        FieldIterator.
        """
        return (
            self.x_origin * self.cell_size,
            self.cell_size,
            0.0,
            self.y_origin * self.cell_size,
            0.0,
            self.cell_size,
        )

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_all(
        self,
        min_points: int = DEFAULT_MIN_POINTS,
        debug: bool = False,
        register: Optional[RegisterFn] = None,
    ) -> RegistrationSummary:
        """
        Register every populated cell, one after the other.

        Args:
            min_points: Minimum points required in both subsets of a cell
            debug: Log per-cell transforms and per-point displacements
            register: Registration primitive; defaults to rigid CPD

        Returns:
            RegistrationSummary with per-outcome counts
        """
        if min_points < 0:
            raise ValueError(f"min_points must be non-negative, got {min_points}")
        if register is None:
            from ..alignment.cpd_registration import CPDRegistration
            register = CPDRegistration().register

        summary = RegistrationSummary()
        start = time.time()
        for cell in self:
            status = cell.register(min_points, register, debug=debug)
            if status is CellStatus.REGISTERED:
                summary.registered += 1
            elif status is CellStatus.SKIPPED:
                summary.skipped += 1
            else:
                summary.failed += 1
        summary.elapsed_s = time.time() - start

        logger.info(
            f"Registered {summary.registered}/{summary.total} cells "
            f"({summary.skipped} below {min_points} points, {summary.failed} failed) "
            f"in {summary.elapsed_s:.1f}s"
        )
        return summary

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def cell_at(self, x: int, y: int) -> Optional[Cell]:
        if not (INT32_MIN <= x <= INT32_MAX and INT32_MIN <= y <= INT32_MAX):
            return None
        return self._cells.get(CellKey(x, y))

    def vector_at(self, x: int, y: int) -> Optional[np.ndarray]:
        """Displacement vector of cell (x, y), or None when there is none."""
        cell = self.cell_at(x, y)
        if cell is None:
            return None
        return cell.vector

    def __contains__(self, key: CellKey) -> bool:
        return key in self._cells

    def __len__(self) -> int:
        return len(self._cells)

    def __iter__(self) -> Iterator[Cell]:
        """Iterate populated cells in row-major key order."""
        for key in sorted(self._cells):
            yield self._cells[key]
