"""Build the configured per-cell registration primitive."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from .cpd_registration import CPDRegistration
from .fine_registration import ICPRegistration
from .registration import RegisterFn

if TYPE_CHECKING:
    from ..utils.config import RegistrationConfig


def make_registration(cfg: Optional["RegistrationConfig"] = None) -> RegisterFn:
    """
    Create a registration primitive from configuration.

    Args:
        cfg: Registration section of AppConfig; defaults are used when None

    Returns:
        Callable register(fixed, moving) -> 4x4 transform
    """
    if cfg is None:
        return CPDRegistration().register

    if cfg.method == "icp":
        return ICPRegistration(
            max_iterations=cfg.icp.max_iterations,
            tolerance=cfg.icp.tolerance,
            max_correspondence_distance=cfg.icp.max_correspondence_distance,
        ).register

    return CPDRegistration(
        max_iterations=cfg.cpd.max_iterations,
        tolerance=cfg.cpd.tolerance,
        w=cfg.cpd.w,
    ).register
