"""
Raster-ordered access to one component of the displacement field.
"""

from __future__ import annotations

import operator
from collections.abc import Sequence
from enum import Enum
from typing import TYPE_CHECKING, Iterator, List, Union, overload

import numpy as np

if TYPE_CHECKING:
    from .grid import Grid

NODATA = -9999.0


class Component(Enum):
    """Displacement vector component, valued by its index in the vector."""
    X = 0
    Y = 1
    Z = 2


class FieldIterator(Sequence):
    """
    One displacement component over the whole grid extent, in row-major order.

    Position p maps to cell (p % x_size + x_origin, p // x_size + y_origin).
    Cells without a displacement vector, populated or not, yield NODATA.

    The sequence is lazy (values are looked up on access), restartable
    (every iter() starts at position 0) and random access, so raster writers
    may seek in either direction. The grid is never modified.

    Example:
        >>> band = FieldIterator(grid, Component.Z)
        >>> len(band) == grid.x_size * grid.y_size
        True
    """

    def __init__(self, grid: "Grid", component: Union[Component, str, int]):
        if isinstance(component, str):
            try:
                component = Component[component.upper()]
            except KeyError:
                raise ValueError(f"Component must be X, Y or Z, got {component!r}") from None
        else:
            component = Component(component)

        # Limits must exist before any position can be mapped
        self._x_origin, self._y_origin, self._x_size, self._y_size = grid.limits
        self._grid = grid
        self.component = component

    def cell_coords(self, pos: int) -> tuple:
        """Grid coordinates (x, y) of raster position pos."""
        return (pos % self._x_size + self._x_origin, pos // self._x_size + self._y_origin)

    def _value(self, pos: int) -> float:
        x, y = self.cell_coords(pos)
        vec = self._grid.vector_at(x, y)
        if vec is None:
            return NODATA
        return float(vec[self.component.value])

    def __len__(self) -> int:
        return self._x_size * self._y_size

    @overload
    def __getitem__(self, index: int) -> float: ...

    @overload
    def __getitem__(self, index: slice) -> List[float]: ...

    def __getitem__(self, index):
        n = len(self)
        if isinstance(index, slice):
            return [self._value(p) for p in range(*index.indices(n))]
        index = operator.index(index)
        if index < 0:
            index += n
        if not 0 <= index < n:
            raise IndexError(f"Field position {index} out of range [0, {n})")
        return self._value(index)

    def __iter__(self) -> Iterator[float]:
        for pos in range(len(self)):
            yield self._value(pos)

    def to_array(self, dtype=np.float64) -> np.ndarray:
        """Materialise the band as a (y_size, x_size) array, row 0 = y_origin."""
        values = np.fromiter(iter(self), dtype=np.float64, count=len(self))
        return values.reshape(self._y_size, self._x_size).astype(dtype, copy=False)

    def __repr__(self) -> str:
        return (
            f"FieldIterator(component={self.component.name}, "
            f"size={self._x_size}x{self._y_size}, "
            f"origin=({self._x_origin}, {self._y_origin}))"
        )
