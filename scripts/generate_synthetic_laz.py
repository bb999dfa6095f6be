"""
Generate two synthetic point clouds (LAZ) of a slope with a sliding block.

- Creates a simple terrain surface with hills and noise.
- T1 is the baseline.
- T2 moves every point inside a rectangular "slide" area by a fixed rigid
  displacement, leaving the rest of the terrain in place.
- Writes data/synthetic/{before,after}.laz.

The expected output of the workflow is a displacement close to SLIDE_SHIFT
for cells inside the slide and close to zero elsewhere.

Requires: laspy with a LAZ backend (lazrs or laszip).
"""
from __future__ import annotations

import argparse
from pathlib import Path

import numpy as np
import laspy

SLIDE_SHIFT = np.array([0.8, -0.5, -0.3])


def ensure_laz_writing_possible():
    # laspy requires either lazrs or laszip to write .laz
    try:
        backends = laspy.LazBackend.detect_available()
        if not backends:
            raise RuntimeError
    except Exception:
        raise RuntimeError(
            "LAZ compression backend not found. Install one of: 'lazrs' (recommended) or 'laszip'."
        )


def make_surface(nx=400, ny=400, spacing=1.0, seed=42):
    rng = np.random.default_rng(seed)
    x = np.arange(nx) * spacing
    y = np.arange(ny) * spacing
    X, Y = np.meshgrid(x, y)
    # Base surface: a slope with gentle hills
    Z = 0.2 * Y + 1.5 * np.sin(0.05 * X) * np.cos(0.04 * Y) + 0.4 * np.sin(0.11 * X + 0.3)
    Z += 0.05 * rng.standard_normal(size=Z.shape)
    return X, Y, Z


def to_points(X, Y, Z, keep_ratio=0.3, seed=123):
    rng = np.random.default_rng(seed)
    H, W = Z.shape
    idx = rng.choice(H * W, size=int(keep_ratio * H * W), replace=False)
    xi = idx % W
    yi = idx // W
    return np.column_stack([X[yi, xi], Y[yi, xi], Z[yi, xi]])


def slide(points, area, shift=SLIDE_SHIFT):
    """Displace the points inside area = (xmin, ymin, xmax, ymax) by shift."""
    xmin, ymin, xmax, ymax = area
    inside = (
        (points[:, 0] >= xmin) & (points[:, 0] < xmax)
        & (points[:, 1] >= ymin) & (points[:, 1] < ymax)
    )
    moved = points.copy()
    moved[inside] += shift
    return moved


def write_laz(path: Path, points: np.ndarray, origin=(466000.0, 6651000.0, 0.0)):
    ensure_laz_writing_possible()
    path.parent.mkdir(parents=True, exist_ok=True)
    hdr = laspy.LasHeader(point_format=6, version="1.4")
    hdr.offsets = np.asarray(origin)
    hdr.scales = np.array([0.001, 0.001, 0.001])
    las = laspy.LasData(hdr)
    las.x = points[:, 0] + origin[0]
    las.y = points[:, 1] + origin[1]
    las.z = points[:, 2] + origin[2]
    # Mark all as ground (2)
    las.classification = np.full(points.shape[0], 2, dtype=np.uint8)
    las.write(str(path))


def main():
    parser = argparse.ArgumentParser(description="Generate a synthetic before/after scan pair")
    parser.add_argument("--out", type=str, default=None, help="Output directory")
    parser.add_argument("--size", type=int, default=400, help="Side length of the area in meters")
    args = parser.parse_args()

    out = Path(args.out) if args.out else Path(__file__).parent.parent / "data" / "synthetic"

    X, Y, Z = make_surface(nx=args.size, ny=args.size, spacing=1.0, seed=1)
    pts_t1 = to_points(X, Y, Z, keep_ratio=0.25, seed=2)
    pts_t2 = to_points(X, Y, Z, keep_ratio=0.25, seed=3)

    # Slide block aligned to the default 100 m cells
    half = args.size // 2
    pts_t2 = slide(pts_t2, (half - 100, half - 100, half + 100, half + 100))

    write_laz(out / "before.laz", pts_t1)
    write_laz(out / "after.laz", pts_t2)

    print(f"Wrote: {out / 'before.laz'}")
    print(f"Wrote: {out / 'after.laz'}")
    print(f"Expected displacement inside the slide: {SLIDE_SHIFT.tolist()}")


if __name__ == "__main__":
    main()
