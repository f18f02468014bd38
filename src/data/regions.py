"""
Atlantis model region definitions.

This module provides the coordinate systems, default data locations and box
eligibility thresholds for each Atlantis model domain the allocator runs on.
"""

from typing import Dict, Any
from pathlib import Path

DATA_DIR = Path(__file__).parent.parent.parent / "data"

# Colony and survey coordinates arrive as WGS84 lat/lon
SOURCE_CRS: str = "EPSG:4326"

# California Current Atlantis (Pacific coast, Baja to Vancouver Island)
CCS_NAME: str = "California Current"
CCS_PLANAR_CRS: str = "EPSG:5070"  # NAD83 / Conus Albers, metres
CCS_N_BOXES: int = 89
CCS_MAX_BOTZ: float = 0.0  # boxes with botz >= 0 are land/islands

REGIONS: Dict[str, Dict[str, Any]] = {
    "ccs": {
        "name": CCS_NAME,
        "source_crs": SOURCE_CRS,
        "planar_crs": CCS_PLANAR_CRS,
        "n_boxes": CCS_N_BOXES,
        "max_botz": CCS_MAX_BOTZ,
        "min_botz": None,
        "grid": DATA_DIR / "atlantis" / "CalCurrentV3_Biol.geojson",
        "land": DATA_DIR / "boundaries" / "west_coast_land.shp",
        "colonies": DATA_DIR / "raw" / "colonies" / "colony_counts.csv",
        "radii": DATA_DIR / "reference" / "foraging_radii.csv",
        "species_groups": DATA_DIR / "reference" / "species_groups.csv",
        "surveys": DATA_DIR / "raw" / "surveys" / "transect_densities.csv",
    }
}


def get_region(name: str) -> Dict[str, Any]:
    """
    Look up a region definition.

    Args:
        name: Registry key, e.g. "ccs"

    Returns:
        Region dictionary (CRS, default paths, eligibility thresholds)

    Raises:
        KeyError: If the region is not registered
    """
    try:
        return REGIONS[name]
    except KeyError:
        known = ", ".join(sorted(REGIONS))
        raise KeyError(f"Unknown region '{name}'. Known regions: {known}") from None
