"""
Foraging buffers for seabird colonies.

A foraging buffer is the disk of the species' foraging radius around a colony
with the land mask removed, so only sea area reachable from the colony is kept.
All geometries are expected in a projected CRS with metre units.
"""

import logging
import math
from typing import List, Optional

import geopandas as gpd
from shapely.geometry import Point, Polygon
from shapely.geometry.base import BaseGeometry

from .records import ColonyObservation

logger = logging.getLogger(__name__)

# Segments per quarter circle used when approximating the disk
BUFFER_QUAD_SEGS = 32


def build_foraging_buffer(
    point: Point,
    radius_km: float,
    land: Optional[BaseGeometry] = None,
    quad_segs: int = BUFFER_QUAD_SEGS
) -> BaseGeometry:
    """
    Build the sea-accessible foraging area around a colony.

    Args:
        point: Colony location (planar CRS, metres)
        radius_km: Foraging radius in kilometres
        land: Land mask to subtract; None means no land in the region
        quad_segs: Segments per quarter circle for the disk

    Returns:
        Polygon or MultiPolygon; an empty Polygon when the radius is not
        positive or the disk lies entirely on land
    """
    if radius_km is None or not math.isfinite(radius_km) or radius_km <= 0:
        return Polygon()

    disk = point.buffer(radius_km * 1000.0, quad_segs=quad_segs)

    if land is None or land.is_empty:
        return disk

    sea = disk.difference(land)
    if sea.is_empty:
        logger.debug(f"Foraging disk at ({point.x:.0f}, {point.y:.0f}) lies entirely on land")
        return Polygon()
    return sea


def build_colony_buffers(
    colonies: List[ColonyObservation],
    land: Optional[BaseGeometry],
    crs: Optional[str] = None
) -> gpd.GeoDataFrame:
    """
    Build buffers for every colony, for QA output.

    Returns:
        GeoDataFrame with one row per colony: identifiers, count, radius,
        buffer_area (m^2) and the buffer geometry
    """
    rows = []
    geometries = []
    for colony in colonies:
        sea = build_foraging_buffer(colony.geometry, colony.radius_km, land)
        rows.append({
            "survey_id": colony.survey_id,
            "site_id": colony.site_id,
            "species": colony.species,
            "group": colony.group,
            "count": colony.count,
            "radius_km": colony.radius_km,
            "buffer_area": sea.area,
        })
        geometries.append(sea)

    return gpd.GeoDataFrame(rows, geometry=geometries, crs=crs)
