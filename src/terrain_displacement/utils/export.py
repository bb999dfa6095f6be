"""
Export utilities for displacement fields.

Writes the per-cell displacement vectors of a registered Grid to a 3-band
GeoTIFF (bands X, Y, Z), readable by QGIS and similar GIS software, and
detects the coordinate reference system of input LAS/LAZ files.
"""

from pathlib import Path
from typing import Optional, TYPE_CHECKING

import numpy as np

from .logging import setup_logger

if TYPE_CHECKING:
    from ..grid.grid import Grid

logger = setup_logger(__name__)

# CRS used when neither the configuration nor the input files provide one
DEFAULT_CRS = "EPSG:32624"


def detect_crs_from_laz(laz_path: str) -> Optional[str]:
    """
    Attempt to detect CRS from a LAZ/LAS file.

    Reads the file header and looks for a WKT VLR to extract the coordinate
    reference system.

    Args:
        laz_path: Path to LAZ/LAS file

    Returns:
        EPSG string (e.g., "EPSG:25833") if found, None otherwise
    """
    try:
        import laspy

        with laspy.open(laz_path) as reader:
            for vlr in reader.header.vlrs:
                # WKT VLR has record_id 2112 and user_id "LASF_Projection"
                if vlr.user_id == "LASF_Projection" and vlr.record_id == 2112:
                    # laspy parses known VLRs; raw ones only carry bytes
                    wkt = getattr(vlr, "string", None)
                    if wkt is None:
                        wkt = vlr.record_data.decode("utf-8", errors="ignore")
                    wkt = wkt.strip("\x00")
                    epsg = _extract_epsg_from_wkt(wkt)
                    if epsg:
                        return epsg

    except Exception as e:
        logger.debug(f"Could not detect CRS from {laz_path}: {e}")

    return None


def _extract_epsg_from_wkt(wkt: str) -> Optional[str]:
    """Extract EPSG code from WKT string."""
    import re

    # Look for AUTHORITY["EPSG","25833"] or similar patterns
    match = re.search(r'AUTHORITY\s*\[\s*"EPSG"\s*,\s*"(\d+)"\s*\]', wkt, re.IGNORECASE)
    if match:
        return f"EPSG:{match.group(1)}"

    # Look for ID["EPSG",25833] (WKT2 format)
    match = re.search(r'ID\s*\[\s*"EPSG"\s*,\s*(\d+)\s*\]', wkt, re.IGNORECASE)
    if match:
        return f"EPSG:{match.group(1)}"

    return None


def export_vector_field_to_geotiff(
    grid: "Grid",
    output_path: str,
    *,
    crs: str = DEFAULT_CRS,
    compress: Optional[str] = "lzw",
) -> str:
    """
    Export the displacement field of a registered grid to a GeoTIFF file.

    Bands 1, 2 and 3 hold the X, Y and Z displacement components, one pixel
    per grid cell. Cells without a displacement carry the NODATA sentinel.

    Args:
        grid: Grid after calc_limits() and register_all()
        output_path: Path for output GeoTIFF file
        crs: Coordinate reference system of the input point clouds
        compress: GeoTIFF compression, or None

    Returns:
        Path to created file

    Raises:
        ValueError: If the grid extent is empty
    """
    import rasterio
    from rasterio.transform import Affine

    from ..grid.field_iterator import Component, FieldIterator, NODATA

    if grid.x_size == 0 or grid.y_size == 0:
        raise ValueError("Grid extent is empty; nothing to export")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    x0, pixel_w, _, y0, _, pixel_h = grid.geotransform()
    # Row 0 is the southern edge of the extent (positive pixel height)
    transform = Affine(pixel_w, 0.0, x0, 0.0, pixel_h, y0)

    profile = dict(
        driver="GTiff",
        height=grid.y_size,
        width=grid.x_size,
        count=3,
        dtype="float32",
        crs=crs,
        transform=transform,
        nodata=NODATA,
    )
    if compress:
        profile["compress"] = compress

    n_valid = 0
    with rasterio.open(str(output_path), "w", **profile) as dst:
        for band, component in enumerate(Component, start=1):
            values = FieldIterator(grid, component).to_array(np.float32)
            dst.write(values, band)
            dst.set_band_description(band, component.name)
            if component is Component.X:
                n_valid = int(np.count_nonzero(values != NODATA))

    logger.info(
        f"Exported displacement raster ({grid.x_size}x{grid.y_size}, "
        f"{n_valid:,} cells with data) to {output_path}"
    )
    return str(output_path)
