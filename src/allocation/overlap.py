"""
Apportion colony counts to grid boxes by overlapping sea area.

Each colony is an independent unit of work: its foraging buffer is intersected
with the grid boxes and the count is split in proportion to intersection area.
The per-colony results are plain lists of OverlapRecord, so the map step can
run in parallel and be merged by the aggregator in any order.
"""

import logging
from functools import partial
from multiprocessing import Pool, cpu_count
from typing import List, Optional, Tuple

import geopandas as gpd
from shapely.errors import GEOSException
from shapely.geometry.base import BaseGeometry

from .buffers import build_foraging_buffer
from .records import ColonyObservation, OverlapRecord

logger = logging.getLogger(__name__)

# Below this many colonies the process pool costs more than it saves
MIN_COLONIES_FOR_POOL = 50


def overlaps_for_buffer(
    colony: ColonyObservation,
    sea: BaseGeometry,
    grid: gpd.GeoDataFrame
) -> List[OverlapRecord]:
    """
    Intersect one foraging buffer with the grid boxes.

    Args:
        colony: Colony the buffer belongs to
        sea: Foraging buffer (planar CRS)
        grid: Boxes with 'box_id' and polygon geometry (same CRS)

    Returns:
        One OverlapRecord per box with positive intersection area
    """
    buffer_area = sea.area
    if sea.is_empty or buffer_area <= 0:
        return []

    # Bounding box pre-filter; the exact test follows
    candidates = grid.iloc[grid.sindex.query(sea)]
    if len(candidates) == 0:
        return []

    areas = candidates.geometry.intersection(sea).area

    records = []
    for box_id, area in zip(candidates["box_id"], areas):
        if not area > 0:
            continue
        proportion = area / buffer_area
        records.append(OverlapRecord(
            colony_key=colony.key,
            group=colony.group,
            cell_id=int(box_id),
            intersection_area=float(area),
            buffer_area=float(buffer_area),
            proportion=float(proportion),
            allocated=float(proportion * colony.count)
        ))
    return records


def allocate_colony(
    colony: ColonyObservation,
    grid: gpd.GeoDataFrame,
    land: Optional[BaseGeometry]
) -> List[OverlapRecord]:
    """Build the colony's foraging buffer and split its count across boxes."""
    sea = build_foraging_buffer(colony.geometry, colony.radius_km, land)
    return overlaps_for_buffer(colony, sea, grid)


def _allocate_worker(
    colonies: List[ColonyObservation],
    grid: gpd.GeoDataFrame,
    land: Optional[BaseGeometry]
) -> Tuple[List[OverlapRecord], List[Tuple[Tuple[str, str, str], str]]]:
    """
    Allocate a batch of colonies, isolating geometry failures per colony.

    Returns:
        (records, failures) where failures lists (colony key, error message)
    """
    records = []
    failures = []
    for colony in colonies:
        try:
            records.extend(allocate_colony(colony, grid, land))
        except (GEOSException, ValueError) as e:
            logger.warning(f"Skipping colony {colony.key}: geometry operation failed: {e}")
            failures.append((colony.key, str(e)))
    return records, failures


def allocate_colonies(
    colonies: List[ColonyObservation],
    grid: gpd.GeoDataFrame,
    land: Optional[BaseGeometry],
    n_processes: Optional[int] = None
) -> Tuple[List[OverlapRecord], List[Tuple[Tuple[str, str, str], str]]]:
    """
    Map every colony to its overlap records.

    Args:
        colonies: Colonies in the grid's planar CRS
        grid: Boxes with 'box_id' and geometry
        land: Land mask (may be None)
        n_processes: Number of parallel processes (None = auto-detect, max 8)

    Returns:
        (records, failures), records ordered as the input colonies
    """
    if n_processes is None:
        n_processes = min(cpu_count(), 8)  # Cap at 8 to avoid overhead

    if n_processes <= 1 or len(colonies) < MIN_COLONIES_FOR_POOL:
        return _allocate_worker(colonies, grid, land)

    # Contiguous chunks keep output order equal to input order
    chunk_size = -(-len(colonies) // n_processes)
    chunks = [colonies[i:i + chunk_size] for i in range(0, len(colonies), chunk_size)]

    logger.info(f"Using {len(chunks)} parallel processes for {len(colonies):,} colonies")

    worker_func = partial(_allocate_worker, grid=grid, land=land)
    with Pool(processes=len(chunks)) as pool:
        results = pool.map(worker_func, chunks)

    records = []
    failures = []
    for chunk_records, chunk_failures in results:
        records.extend(chunk_records)
        failures.extend(chunk_failures)
    return records, failures
