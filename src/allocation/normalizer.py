"""
Zero-floor normalization of per-box abundance.

The downstream ecosystem model needs a strictly positive initial density in
every habitable box. For each group the eligible boxes get
proportion = abundance / total; boxes at exactly zero are raised to the
smallest positive proportion of that group, and the amount added is taken
from the box holding the largest proportion so the column still sums to one.
When several boxes tie for the largest proportion, the one with the lowest
box_id is decremented.
"""

import logging
from typing import Dict, Optional, Tuple

import numpy as np
import pandas as pd

from .errors import AllocationError, NoAllocableAbundanceError, ZeroFloorError

logger = logging.getLogger(__name__)


def eligible_boxes(
    grid: pd.DataFrame,
    max_botz: float = 0.0,
    min_botz: Optional[float] = None
) -> pd.Series:
    """
    Flag boxes that can hold abundance.

    A box is eligible when it is not a boundary box and its bottom depth is
    below max_botz (botz is negative under sea level, so the default excludes
    land and islands). min_botz optionally excludes boxes deeper than it.

    Returns:
        Boolean Series aligned with grid
    """
    eligible = ~grid["boundary"].astype(bool) & (grid["botz"] < max_botz)
    if min_botz is not None:
        eligible &= grid["botz"] >= min_botz
    return eligible


def normalize_group(table: pd.DataFrame, group: str = "") -> pd.Series:
    """
    Zero-floor proportions for one group over its eligible boxes.

    Args:
        table: Eligible rows of one group with 'box_id' and 'abundance'
        group: Group label used in error messages

    Returns:
        Proportions indexed by box_id, sorted by box_id, summing to 1

    Raises:
        NoAllocableAbundanceError: total abundance is not positive
        ZeroFloorError: compensation would leave the largest box at or below 0
    """
    abundance = table.set_index("box_id")["abundance"].astype(float).sort_index()

    total = abundance.sum()
    if len(abundance) == 0 or not np.isfinite(total) or total <= 0:
        raise NoAllocableAbundanceError(group)

    proportion = abundance / total

    zero = proportion == 0
    n_zero = int(zero.sum())
    if n_zero == 0:
        return proportion

    floor = proportion[proportion > 0].min()
    # idxmax returns the first maximum, i.e. the lowest box_id on ties
    largest = proportion.idxmax()

    proportion.loc[zero] = floor
    proportion.loc[largest] -= n_zero * floor
    if proportion.loc[largest] <= 0:
        raise ZeroFloorError(group, float(proportion.loc[largest]))

    logger.debug(
        f"Group {group}: raised {n_zero} empty boxes to {floor:.3g}, "
        f"compensated from box {largest}"
    )
    return proportion


def normalize_groups(
    table: pd.DataFrame,
    max_botz: float = 0.0,
    min_botz: Optional[float] = None
) -> Tuple[pd.DataFrame, Dict[str, str]]:
    """
    Apply zero-floor normalization to every group in an abundance table.

    Args:
        table: Aggregated table with box_id, group, abundance, boundary, botz
        max_botz: Eligibility threshold, see eligible_boxes
        min_botz: Optional deepest eligible botz

    Returns:
        (normalized, failed) where normalized adds 'eligible' and 'proportion'
        columns for the groups that succeeded (ineligible boxes get
        proportion 0) and failed maps group -> reason
    """
    flagged = table.assign(eligible=eligible_boxes(table, max_botz, min_botz))

    parts = []
    failed = {}
    for group, rows in flagged.groupby("group", sort=True):
        try:
            proportion = normalize_group(rows[rows["eligible"]], group=group)
        except AllocationError as e:
            logger.warning(str(e))
            failed[group] = str(e)
            continue

        rows = rows.copy()
        rows["proportion"] = rows["box_id"].map(proportion).fillna(0.0)
        parts.append(rows)

    if parts:
        normalized = pd.concat(parts, ignore_index=True)
    else:
        normalized = flagged.iloc[0:0].assign(proportion=pd.Series(dtype=float))

    return normalized.sort_values(["group", "box_id"]).reset_index(drop=True), failed
