"""
End-to-end displacement workflow and command line entry point.

Loads two scans, optionally pre-transforms them, bins them into the grid,
registers every cell and writes the X/Y/Z displacement raster.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import numpy as np
from laspy.errors import LaspyException

from .alignment import apply_transform, compose_transforms, make_registration
from .grid import Grid, Order, RegistrationSummary
from .preprocessing import PointCloudLoader
from .utils.config import AppConfig, load_config
from .utils.export import DEFAULT_CRS, export_vector_field_to_geotiff
from .utils.logging import configure_package_logging, setup_logger

logger = setup_logger(__name__)

PROG = "terrain-displacement"


@dataclass
class WorkflowResult:
    """What a workflow run produced."""
    grid: Grid
    summary: RegistrationSummary
    output_path: Optional[str]


def build_grid(
    before: np.ndarray,
    after: np.ndarray,
    cfg: AppConfig,
    transform: Optional[np.ndarray] = None,
) -> Grid:
    """
    Bin both scans into a new grid and compute its limits.

    Args:
        before: Nx3 points of the earlier scan
        after: Mx3 points of the later scan
        cfg: Application configuration (grid.cell_size is used)
        transform: Optional 4x4 pre-transform applied to both scans

    Returns:
        Grid with limits computed, ready for registration
    """
    if transform is not None:
        before = apply_transform(before, transform)
        after = apply_transform(after, transform)

    grid = Grid(cfg.grid.cell_size)
    grid.insert(before, Order.BEFORE)
    grid.insert(after, Order.AFTER)
    grid.calc_limits()
    return grid


def run(before_file: str, after_file: str, cfg: AppConfig) -> WorkflowResult:
    """
    Run the displacement workflow on two LAS/LAZ files.

    Raises:
        ValueError: On invalid transform specs (before any file is read)
        FileNotFoundError: If an input file is missing
        LaspyException: If an input file is not valid LAS/LAZ
    """
    # Fatal configuration problems surface before any loading
    transform = compose_transforms(cfg.transform)
    register = make_registration(cfg.registration)

    loader = PointCloudLoader(
        ground_only=cfg.preprocessing.ground_only,
        classification_filter=cfg.preprocessing.classification_filter,
    )
    before = loader.load(before_file)
    after = loader.load(after_file)

    grid = build_grid(before["points"], after["points"], cfg, transform)
    summary = grid.register_all(
        min_points=cfg.registration.min_points,
        debug=cfg.registration.debug,
        register=register,
    )

    if grid.x_size == 0 or grid.y_size == 0:
        logger.warning("No data: grid is empty, no raster written")
        return WorkflowResult(grid=grid, summary=summary, output_path=None)

    crs = cfg.output.crs or before["metadata"].get("crs") or DEFAULT_CRS
    output_path = export_vector_field_to_geotiff(grid, cfg.output.path, crs=crs)
    return WorkflowResult(grid=grid, summary=summary, output_path=output_path)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Per-cell rigid displacement between two point cloud scans",
    )
    parser.add_argument("before", help="Filename of scene at time 't'")
    parser.add_argument("after", help="Filename of scene at time 't + n'")
    parser.add_argument(
        "transform",
        nargs="*",
        help="Transform specs (16 numbers in one argument, or a file) "
             "multiplied as written: A B C = A * B * C",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML configuration file (defaults to config/default.yaml)",
    )
    parser.add_argument(
        "--minpts",
        type=int,
        default=None,
        help="Minimum number of points in a cell to permit processing",
    )
    parser.add_argument("--cell-size", type=float, default=None, help="Cell side length")
    parser.add_argument("--method", choices=["cpd", "icp"], default=None, help="Registration method")
    parser.add_argument("--output", type=str, default=None, help="Output GeoTIFF path")
    parser.add_argument("--crs", type=str, default=None, help="CRS of the output raster")
    parser.add_argument("--debug", action="store_true", help="Dump transform and points")
    return parser


def apply_overrides(cfg: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Return a validated copy of cfg with command line values applied."""
    data = cfg.model_dump()
    if args.transform:
        data["transform"] = list(args.transform)
    if args.minpts is not None:
        data["registration"]["min_points"] = args.minpts
    if args.cell_size is not None:
        data["grid"]["cell_size"] = args.cell_size
    if args.method is not None:
        data["registration"]["method"] = args.method
    if args.debug:
        data["registration"]["debug"] = True
    if args.output is not None:
        data["output"]["path"] = args.output
    if args.crs is not None:
        data["output"]["crs"] = args.crs
    return AppConfig.model_validate(data)


def _fatal(message: str) -> int:
    print(f"{PROG}: {message}", file=sys.stderr)
    return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Command line entry point; returns the process exit status."""
    args = build_parser().parse_args(argv)

    try:
        cfg = apply_overrides(load_config(args.config), args)
    except (ValueError, FileNotFoundError) as e:
        return _fatal(str(e))

    log_level = getattr(logging, cfg.logging.level.upper(), logging.INFO)
    configure_package_logging(level=log_level, log_file=cfg.logging.file)

    logger.info("Terrain Displacement Workflow")
    logger.info("=============================")
    logger.info(f"Before: {Path(args.before).name}  After: {Path(args.after).name}")
    logger.info(
        f"Cell size: {cfg.grid.cell_size}, min points: {cfg.registration.min_points}, "
        f"method: {cfg.registration.method}"
    )

    try:
        result = run(args.before, args.after, cfg)
    except (ValueError, OSError, LaspyException) as e:
        return _fatal(str(e))

    if result.output_path:
        logger.info(f"Wrote {result.output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
