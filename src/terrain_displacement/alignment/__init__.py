"""
Registration Module

This module provides the rigid registration primitives used per grid cell
(coherent point drift and ICP) and the optional pre-transform applied to
both scans before binning.
"""

from .registration import (
    RegistrationError,
    RegisterFn,
    rigid_matrix,
    translation_matrix,
    check_transform,
)
from .cpd_registration import CPDRegistration
from .fine_registration import ICPRegistration
from .pre_transform import (
    parse_transform_spec,
    compose_transforms,
    apply_transform,
    save_transform_matrix,
    load_transform_matrix,
)
from .factory import make_registration

__all__ = [
    "RegistrationError",
    "RegisterFn",
    "rigid_matrix",
    "translation_matrix",
    "check_transform",
    "CPDRegistration",
    "ICPRegistration",
    "parse_transform_spec",
    "compose_transforms",
    "apply_transform",
    "save_transform_matrix",
    "load_transform_matrix",
    "make_registration",
]
