"""
Point Cloud Filtering Utilities

Classification-based filtering applied while loading the two scans.
"""

from typing import List, Optional

import numpy as np


def create_classification_mask(
    classification: np.ndarray,
    ground_only: bool = True,
    classification_filter: Optional[List[int]] = None,
) -> np.ndarray:
    """Create a boolean mask for point classification filtering.

    Args:
        classification: Array of classification codes for each point
        ground_only: If True, only accept ground points (class 2).
            Ignored if classification_filter is provided.
        classification_filter: List of classification codes to accept.
            If provided, overrides ground_only behavior.

    Returns:
        Boolean array indicating which points pass the filter (True = accept)

    Examples:
        >>> classes = np.array([1, 2, 2, 3, 2, 1])
        >>> create_classification_mask(classes, ground_only=True)
        array([False,  True,  True, False,  True, False])
    """
    if classification_filter is not None:
        return np.isin(classification, np.array(classification_filter))

    if ground_only:
        return classification == 2

    return np.ones(len(classification), dtype=bool)


def describe_filter(
    ground_only: bool = True,
    classification_filter: Optional[List[int]] = None,
) -> str:
    """Human-readable description of a classification filter, for logging."""
    if classification_filter is not None:
        return f"classification filter: {classification_filter}"
    if ground_only:
        return "ground only (class 2)"
    return "no filter"
