"""
Terrain Displacement Package

A Python package for estimating terrain motion between two point cloud scans
of the same area. The ground plane is split into square cells, a rigid
transform is estimated per cell (coherent point drift by default, ICP as an
alternative) and the resulting displacement of each cell centre is written
as a 3-band X/Y/Z raster.
"""

__version__ = "0.1.0"

from .preprocessing import *
from .alignment import *
from .grid import *
from .utils import *

__all__ = [
    "preprocessing",
    "alignment",
    "grid",
    "utils",
]
