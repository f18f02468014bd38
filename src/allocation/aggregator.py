from typing import Iterable, List, Optional
import pandas as pd
import geopandas as gpd

from .records import OverlapRecord

ABUNDANCE_COLUMNS = ["box_id", "group", "abundance"]


class AbundanceAggregator:
    """Sums allocated abundance per box and species group"""

    def __init__(self, grid: gpd.GeoDataFrame):
        """
        Args:
            grid: Boxes with 'box_id' plus attribute columns to carry through
        """
        self.box_ids = sorted(int(b) for b in grid["box_id"])
        self.attributes = pd.DataFrame(grid.drop(columns=grid.geometry.name))

    def aggregate(
        self,
        records: List[OverlapRecord],
        groups: Optional[Iterable[str]] = None
    ) -> pd.DataFrame:
        """
        Group-by-sum the overlap records into a full groups x boxes table.

        Boxes with no contribution from a group are present with abundance 0.
        The result is sorted by (group, box_id), so it does not depend on the
        order the records arrive in.

        Args:
            records: Overlap records from the allocator
            groups: Observed groups. A group here with no records still gets
                a zero row for every box.
        """
        totals = self._sum_records(records)
        observed = set(totals["group"]) | set(groups or [])
        groups = sorted(observed)

        index = pd.MultiIndex.from_product([groups, self.box_ids], names=["group", "box_id"])
        full = (
            totals.set_index(["group", "box_id"])["abundance"]
            .reindex(index, fill_value=0.0)
            .reset_index()
        )
        return self.attach_attributes(full)

    def attach_attributes(self, table: pd.DataFrame) -> pd.DataFrame:
        """Join box attribute columns onto a (group, box_id, abundance) table"""
        merged = table.merge(self.attributes, on="box_id", how="left")
        ordered = ["box_id", "group", "abundance"] + [
            c for c in merged.columns if c not in ABUNDANCE_COLUMNS
        ]
        return merged[ordered].sort_values(["group", "box_id"]).reset_index(drop=True)

    def _sum_records(self, records: List[OverlapRecord]) -> pd.DataFrame:
        """Sum allocated values per (group, box)"""
        if not records:
            return pd.DataFrame({
                "group": pd.Series(dtype=object),
                "box_id": pd.Series(dtype="int64"),
                "abundance": pd.Series(dtype=float),
            })

        frame = pd.DataFrame({
            "group": [r.group for r in records],
            "box_id": [r.cell_id for r in records],
            "abundance": [r.allocated for r in records],
        })
        # Sorting before summing fixes the float summation order
        frame = frame.sort_values(["group", "box_id", "abundance"], kind="mergesort")
        return frame.groupby(["group", "box_id"], as_index=False)["abundance"].sum()
