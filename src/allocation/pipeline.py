"""
End-to-end colony allocation: buffers -> overlaps -> per-box totals -> proportions.

Each stage takes its inputs explicitly and returns new values; nothing is
carried between stages in shared state.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import geopandas as gpd
import pandas as pd
from shapely.geometry.base import BaseGeometry

from .aggregator import AbundanceAggregator
from .normalizer import normalize_groups
from .overlap import allocate_colonies
from .records import ColonyObservation, OverlapRecord

logger = logging.getLogger(__name__)


@dataclass
class AllocationResult:
    """Everything one allocation run produces"""
    records: List[OverlapRecord]
    abundance: pd.DataFrame  # groups x boxes raw abundance
    proportions: pd.DataFrame  # abundance + eligible + proportion, successful groups only
    failed_groups: Dict[str, str] = field(default_factory=dict)
    failed_colonies: List[Tuple[Tuple[str, str, str], str]] = field(default_factory=list)

    def unallocated(self, colonies: List[ColonyObservation]) -> pd.DataFrame:
        """Per-colony count that fell outside the grid or on land"""
        allocated: Dict[Tuple[str, str, str], float] = {}
        for r in self.records:
            allocated[r.colony_key] = allocated.get(r.colony_key, 0.0) + r.allocated

        rows = []
        for c in colonies:
            share = allocated.get(c.key, 0.0)
            rows.append({
                "survey_id": c.survey_id,
                "site_id": c.site_id,
                "species": c.species,
                "group": c.group,
                "count": c.count,
                "allocated": share,
                "unallocated": c.count - share,
            })
        return pd.DataFrame(rows)


class ColonyAllocationPipeline:
    """Allocates colony counts onto an Atlantis box grid"""

    def __init__(
        self,
        grid: gpd.GeoDataFrame,
        land: Optional[BaseGeometry],
        n_processes: Optional[int] = None,
        max_botz: float = 0.0,
        min_botz: Optional[float] = None
    ):
        """
        Args:
            grid: Boxes with box_id, boundary, botz and geometry (planar CRS)
            land: Dissolved land mask in the same CRS
            n_processes: Parallel processes for the overlap step (None = auto)
            max_botz: Boxes must have botz below this to be eligible
            min_botz: Optional deepest eligible botz
        """
        self.grid = grid
        self.land = land
        self.n_processes = n_processes
        self.max_botz = max_botz
        self.min_botz = min_botz
        self.aggregator = AbundanceAggregator(grid)

    def run(self, colonies: List[ColonyObservation]) -> AllocationResult:
        """Allocate all colonies and normalize each group"""
        logger.info(f"Allocating {len(colonies):,} colonies over {len(self.grid):,} boxes")

        records, failed_colonies = allocate_colonies(
            colonies, self.grid, self.land, n_processes=self.n_processes
        )
        logger.info(f"  {len(records):,} colony/box overlaps")
        if failed_colonies:
            logger.warning(f"  {len(failed_colonies):,} colonies skipped after geometry errors")

        abundance = self.aggregator.aggregate(records, groups={c.group for c in colonies})
        proportions, failed_groups = normalize_groups(
            abundance, max_botz=self.max_botz, min_botz=self.min_botz
        )
        logger.info(
            f"  Normalized {proportions['group'].nunique() if len(proportions) else 0} groups, "
            f"{len(failed_groups)} without allocable abundance"
        )

        return AllocationResult(
            records=records,
            abundance=abundance,
            proportions=proportions,
            failed_groups=failed_groups,
            failed_colonies=failed_colonies
        )
