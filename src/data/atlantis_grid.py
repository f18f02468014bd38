"""
Atlantis box geometry and land mask loading.

The box grid is read from a polygon dataset exported from the Atlantis BGM
file (one feature per box). Column names differ between exports, so they are
normalised to box_id, boundary and botz here.
"""

from typing import Optional
from pathlib import Path
import logging

import geopandas as gpd
import pandas as pd
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union

logger = logging.getLogger(__name__)

# Column names seen in BGM-derived shapefiles/geojson
BOX_ID_ALIASES = ["box_id", "BOX_ID", "boxid", ".boxid", "id"]
BOUNDARY_ALIASES = ["boundary", "BOUNDARY", "is_boundary", ".isBoundary"]
BOTZ_ALIASES = ["botz", "BOTZ", ".botz", "depth"]

_TRUE_STRINGS = {"true", "t", "1", "yes", "y"}


def _find_column(gdf: gpd.GeoDataFrame, aliases, explicit: Optional[str]) -> Optional[str]:
    if explicit is not None:
        if explicit not in gdf.columns:
            raise ValueError(f"Column '{explicit}' not found in grid; columns: {list(gdf.columns)}")
        return explicit
    for name in aliases:
        if name in gdf.columns:
            return name
    return None


def _as_bool(values: pd.Series) -> pd.Series:
    if values.dtype == bool:
        return values
    return values.astype(str).str.strip().str.lower().isin(_TRUE_STRINGS)


def prepare_box_grid(
    gdf: gpd.GeoDataFrame,
    planar_crs: Optional[str] = None,
    id_column: Optional[str] = None,
    boundary_column: Optional[str] = None,
    botz_column: Optional[str] = None
) -> gpd.GeoDataFrame:
    """
    Normalise a box GeoDataFrame to box_id, boundary, botz and geometry.

    Invalid polygons are repaired with buffer(0). A missing boundary column
    means no box is flagged; a missing botz column is an error.

    Raises:
        ValueError: Missing id/botz columns or duplicate box ids
    """
    id_col = _find_column(gdf, BOX_ID_ALIASES, id_column)
    botz_col = _find_column(gdf, BOTZ_ALIASES, botz_column)
    boundary_col = _find_column(gdf, BOUNDARY_ALIASES, boundary_column)

    if id_col is None:
        raise ValueError(f"No box id column found; tried {BOX_ID_ALIASES}")
    if botz_col is None:
        raise ValueError(f"No botz column found; tried {BOTZ_ALIASES}")

    grid = gpd.GeoDataFrame(
        {
            "box_id": pd.to_numeric(gdf[id_col]).astype(int).values,
            "boundary": (_as_bool(gdf[boundary_col]) if boundary_col
                         else pd.Series(False, index=gdf.index)).values,
            "botz": pd.to_numeric(gdf[botz_col], errors="coerce").astype(float).values,
        },
        geometry=gdf.geometry.values,
        crs=gdf.crs
    )

    duplicated = grid["box_id"][grid["box_id"].duplicated()].unique()
    if len(duplicated) > 0:
        raise ValueError(f"Duplicate box ids in grid: {sorted(duplicated.tolist())}")

    invalid = ~grid.geometry.is_valid
    if invalid.any():
        logger.warning(f"Repairing {int(invalid.sum())} invalid box polygons with buffer(0)")
        grid.loc[invalid, "geometry"] = grid.loc[invalid].geometry.buffer(0)

    if planar_crs is not None and grid.crs is not None and grid.crs != planar_crs:
        grid = grid.to_crs(planar_crs)

    return grid.sort_values("box_id").reset_index(drop=True)


def load_box_grid(path: Path, planar_crs: Optional[str] = None, **columns) -> gpd.GeoDataFrame:
    """
    Load Atlantis boxes from a shapefile or GeoJSON.

    Args:
        path: Polygon dataset with one feature per box
        planar_crs: Projected CRS to convert to
        **columns: Optional explicit id_column, boundary_column, botz_column

    Returns:
        GeoDataFrame with box_id, boundary, botz, geometry
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Box grid not found: {path}")

    gdf = gpd.read_file(path)
    grid = prepare_box_grid(gdf, planar_crs=planar_crs, **columns)
    logger.info(
        f"Loaded {len(grid)} boxes from {path} "
        f"({int(grid['boundary'].sum())} boundary boxes)"
    )
    return grid


def dissolve_land(land: gpd.GeoDataFrame) -> BaseGeometry:
    """Union all land features into a single (multi)polygon."""
    geometries = land.geometry
    invalid = ~geometries.is_valid
    if invalid.any():
        geometries = geometries.where(~invalid, geometries.buffer(0))
    return unary_union(list(geometries.dropna()))


def load_land_mask(path: Path, planar_crs: Optional[str] = None) -> BaseGeometry:
    """
    Load and dissolve the land polygons.

    Returns:
        Single land geometry in planar_crs
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Land polygons not found: {path}")

    land = gpd.read_file(path)
    if planar_crs is not None and land.crs is not None and land.crs != planar_crs:
        land = land.to_crs(planar_crs)

    logger.info(f"Loaded {len(land):,} land features from {path}")
    return dissolve_land(land)
