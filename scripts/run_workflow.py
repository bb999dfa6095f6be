"""
Run the terrain displacement workflow from a source checkout.

Example:
    python scripts/run_workflow.py before.laz after.laz --minpts 250 --output vector.tif
"""

import sys
from pathlib import Path

# Add the src to the path to import modules
sys.path.append(str(Path(__file__).parent.parent / "src"))

from terrain_displacement.workflow import main

if __name__ == "__main__":
    sys.exit(main())
