"""
Pre-transform utilities

Parses the optional 4x4 transforms applied to both scans before binning,
and provides helpers to apply, save and load such matrices.
"""

from pathlib import Path
from typing import Iterable, List, Optional

import numpy as np

from ..utils.logging import setup_logger

logger = setup_logger(__name__)


def parse_transform_spec(spec: str) -> np.ndarray:
    """Parse a single transform spec into a 4x4 matrix.

    A spec is either the path of a text file or a string holding 16
    whitespace-separated numbers, in row-major order.

    Args:
        spec: File path or matrix entries

    Returns:
        4x4 transformation matrix

    Raises:
        ValueError: If the spec does not hold exactly 16 numeric entries
    """
    text = spec
    path = Path(spec)
    try:
        is_file = path.is_file()
    except OSError:
        is_file = False
    if is_file:
        file_text = path.read_text(encoding="utf-8")
        if file_text.strip():
            logger.debug(f"Reading transform from {path}")
            text = file_text

    entries = text.split()
    if len(entries) != 16:
        raise ValueError("Each 'transform' option must have 16 numeric entries")

    values: List[float] = []
    for pos, entry in enumerate(entries, start=1):
        try:
            value = float(entry)
        except ValueError:
            raise ValueError(f"'transform' entry {pos} is not a valid numeric value.") from None
        if not np.isfinite(value):
            raise ValueError(f"'transform' entry {pos} is not a valid numeric value.")
        values.append(value)

    return np.array(values, dtype=np.float64).reshape(4, 4)


def compose_transforms(specs: Optional[Iterable[str]]) -> np.ndarray:
    """Multiply transform specs as written: A B C -> A @ B @ C.

    Returns the identity when no specs are given.
    """
    transform = np.eye(4)
    for spec in specs or []:
        transform = transform @ parse_transform_spec(spec)
    return transform


def apply_transform(points: np.ndarray, transform: np.ndarray) -> np.ndarray:
    """Apply a 4x4 homogeneous transform to an (N, 3) point array.

    Args:
        points: Nx3 array of point coordinates [X, Y, Z]
        transform: 4x4 transformation matrix

    Returns:
        Transformed Nx3 array

    Raises:
        ValueError: If transform is not a 4x4 matrix
    """
    transform = np.asarray(transform, dtype=np.float64)
    if transform.shape != (4, 4):
        raise ValueError(f"Transform must be 4x4 matrix, got {transform.shape}")

    points = np.asarray(points, dtype=np.float64)
    if points.size == 0 or np.array_equal(transform, np.eye(4)):
        return points

    homogeneous = np.column_stack([points[:, :3], np.ones(len(points))])
    out = homogeneous @ transform.T
    # Projective rows are allowed in a spec; normalise by w
    return out[:, :3] / out[:, 3:4]


def save_transform_matrix(transform: np.ndarray, output_file: str) -> None:
    """Save a transformation matrix to a text file.

    The file is a valid transform spec for parse_transform_spec.
    """
    np.savetxt(output_file, transform, fmt='%.18e')
    logger.info(f"Saved transformation matrix to {output_file}")


def load_transform_matrix(input_file: str) -> np.ndarray:
    """Load a transformation matrix from a text file.

    Raises:
        ValueError: If the file does not hold a 4x4 matrix
    """
    transform = np.loadtxt(input_file)
    if transform.shape != (4, 4):
        raise ValueError(f"Expected 4x4 matrix, got shape {transform.shape}")
    logger.info(f"Loaded transformation matrix from {input_file}")
    return transform
