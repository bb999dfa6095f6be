"""
Spatial Grid Module

This module bins two point cloud scans into square ground cells, estimates a
rigid displacement per cell and exposes the resulting vector field in raster
order:
- CellKey: packed integer identifier of a cell
- Cell: per-cell point subsets and registration
- Grid: binning, extent and registration orchestration
- FieldIterator: row-major access to one displacement component
"""

from .cell_key import CellKey
from .cell import Cell, CellStatus, Order
from .grid import Grid, RegistrationSummary, DEFAULT_MIN_POINTS
from .field_iterator import FieldIterator, Component, NODATA

__all__ = [
    "CellKey",
    "Cell",
    "CellStatus",
    "Order",
    "Grid",
    "RegistrationSummary",
    "DEFAULT_MIN_POINTS",
    "FieldIterator",
    "Component",
    "NODATA",
]
