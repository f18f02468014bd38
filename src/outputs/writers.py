"""
Writers for allocation results.

Per-group CSV tables for review and Atlantis biology.prm style distribution
blocks ("<CODE>_S<season> <n boxes>" followed by one proportion per box).
"""

from typing import Dict, List, Optional
from pathlib import Path
import logging
import re

import pandas as pd

logger = logging.getLogger(__name__)

OUTPUT_COLUMNS = ["box_id", "boundary", "botz", "eligible", "group", "abundance", "proportion"]


def _safe_name(label: str) -> str:
    return re.sub(r"[^A-Za-z0-9_-]+", "_", str(label)).strip("_") or "group"


def write_group_tables(table: pd.DataFrame, output_dir: Path, prefix: str = "abundance") -> List[Path]:
    """
    Write one CSV per group.

    Args:
        table: Normalized table (see normalize_groups)
        output_dir: Directory to write into (created if needed)
        prefix: File name prefix, files are <prefix>_<group>.csv

    Returns:
        Paths written, in group order
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    columns = [c for c in OUTPUT_COLUMNS if c in table.columns]
    written = []
    for group, rows in table.groupby("group", sort=True):
        path = output_dir / f"{prefix}_{_safe_name(group)}.csv"
        rows.sort_values("box_id")[columns].to_csv(path, index=False)
        written.append(path)
        logger.info(f"  ✓ {group}: {path}")
    return written


def format_atlantis_distribution(code: str, proportions: pd.Series, season: int = 1,
                                 precision: int = 6) -> str:
    """
    Format one distribution block.

    Args:
        code: Atlantis functional group code, e.g. "SB"
        proportions: Proportion per box, indexed by box_id
        season: Season number in the parameter name
        precision: Decimal places

    Returns:
        Two-line block ending in a newline
    """
    values = proportions.sort_index()
    body = " ".join(f"{v:.{precision}f}" for v in values)
    return f"{code}_S{season} {len(values)}\n{body}\n"


def write_atlantis_distributions(
    table: pd.DataFrame,
    path: Path,
    codes: Optional[Dict[str, str]] = None,
    season: int = 1
) -> Path:
    """
    Write distribution blocks for every group in a normalized table.

    Args:
        table: Normalized table with box_id, group, proportion
        path: Output text file
        codes: Group -> Atlantis code; groups not listed use their label
        season: Season number

    Returns:
        The path written
    """
    codes = codes or {}
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    blocks = []
    for group, rows in table.groupby("group", sort=True):
        proportions = rows.set_index("box_id")["proportion"]
        blocks.append(format_atlantis_distribution(codes.get(group, group), proportions, season))

    path.write_text("\n".join(blocks))
    logger.info(f"Wrote {len(blocks)} distribution blocks to {path}")
    return path
