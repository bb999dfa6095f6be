"""
Configuration management for terrain-displacement.

Provides a typed pydantic model and YAML loader with sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Literal, List, Any, Dict

from pydantic import BaseModel, Field, ValidationError
import yaml


# -----------------------
# Typed config structures
# -----------------------


class GridConfig(BaseModel):
    cell_size: float = Field(default=100.0, gt=0, description="Cell side length in data units (meters)")


class CPDConfig(BaseModel):
    max_iterations: int = Field(default=100, gt=0)
    tolerance: float = Field(default=1e-3, gt=0, description="Convergence tolerance on objective change")
    w: float = Field(default=0.0, ge=0.0, lt=1.0, description="Weight of the uniform outlier component")


class ICPConfig(BaseModel):
    max_iterations: int = Field(default=100, gt=0)
    tolerance: float = Field(default=1e-6, gt=0)
    max_correspondence_distance: float = Field(default=5.0, gt=0)


class RegistrationConfig(BaseModel):
    method: Literal["cpd", "icp"] = Field(default="cpd")
    min_points: int = Field(
        default=250,
        ge=0,
        description="Minimum number of points in each scan for a cell to be registered",
    )
    debug: bool = Field(default=False, description="Log per-cell transforms and per-point vectors")
    cpd: CPDConfig = Field(default_factory=CPDConfig)
    icp: ICPConfig = Field(default_factory=ICPConfig)


class PreprocessingConfig(BaseModel):
    ground_only: bool = Field(default=False)
    classification_filter: Optional[List[int]] = Field(default=None)


class OutputConfig(BaseModel):
    path: str = Field(default="vector.tif")
    # None = detect from the "before" file, falling back to DEFAULT_CRS
    crs: Optional[str] = Field(default=None)


class LoggingConfig(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    file: Optional[str] = Field(default=None)


class AppConfig(BaseModel):
    grid: GridConfig = Field(default_factory=GridConfig)
    registration: RegistrationConfig = Field(default_factory=RegistrationConfig)
    # Transform specs (16 numbers or a file path each), multiplied as written
    transform: List[str] = Field(default_factory=list)
    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# -----------------------
# Loader
# -----------------------


def _project_root() -> Path:
    """
    Resolve the repository root directory.

    File is at: repo_root/src/terrain_displacement/utils/config.py
    """
    return Path(__file__).resolve().parents[3]


def load_config(path: Optional[str | Path] = None, *, allow_missing: bool = True) -> AppConfig:
    """
    Load configuration from YAML into a typed AppConfig.

    Search order when path is None:
    1) repo_root/config/default.yaml
    2) if missing and allow_missing=True: return default AppConfig()

    Args:
        path: Explicit YAML file path.
        allow_missing: If True, returns defaults when the default file is missing.
            An explicitly given path must always exist.

    Returns:
        AppConfig instance
    """
    cfg_path: Path
    if path is None:
        cfg_path = _project_root() / "config" / "default.yaml"
    else:
        cfg_path = Path(path)

    if not cfg_path.exists():
        if allow_missing and path is None:
            return AppConfig()
        raise FileNotFoundError(f"Config file not found: {cfg_path}")

    with cfg_path.open("r", encoding="utf-8") as f:
        try:
            raw: Dict[str, Any] = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid configuration in {cfg_path}: {e}") from e

    try:
        return AppConfig.model_validate(raw)
    except ValidationError as e:
        # Re-raise with context to help users fix the YAML
        raise ValueError(f"Invalid configuration in {cfg_path}: {e}")
