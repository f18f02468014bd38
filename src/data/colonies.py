"""
Colony census ingestion.

Reads colony count tables, the species foraging-radius lookup and the
species-to-group reconciliation table, and turns them into ColonyObservation
records in the planar CRS used for buffering.
"""

from typing import Dict, List, Optional, Tuple
from pathlib import Path
import logging

import numpy as np
import pandas as pd
import geopandas as gpd

from ..allocation.errors import MissingForagingRadiusError
from ..allocation.records import ColonyObservation
from .regions import SOURCE_CRS

logger = logging.getLogger(__name__)

COLONY_COLUMNS = ["survey_id", "site_id", "species", "count", "latitude", "longitude"]


def load_colony_table(path: Path) -> pd.DataFrame:
    """
    Load colony counts from CSV.

    Args:
        path: CSV with survey_id, site_id, species, count, latitude, longitude

    Returns:
        DataFrame with identifier columns as strings

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If required columns are missing
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Colony file not found: {path}")

    df = pd.read_csv(path, dtype={"survey_id": str, "site_id": str, "species": str})
    missing = [c for c in COLONY_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Colony file {path} is missing columns: {missing}")

    df["species"] = df["species"].str.strip()
    logger.info(f"Loaded {len(df):,} colony records from {path}")
    return df


def load_foraging_radii(path: Path, species_column: str = "species",
                        radius_column: str = "radius_km") -> Dict[str, float]:
    """
    Load the species foraging radius lookup.

    Blank, non-numeric and non-positive radii are dropped so those species
    are reported as missing rather than buffered with a bad value.

    Returns:
        Dictionary species -> radius in km
    """
    df = pd.read_csv(path, dtype={species_column: str})
    radii = pd.to_numeric(df[radius_column], errors="coerce")
    valid = radii.notna() & (radii > 0) & df[species_column].notna()

    dropped = df.loc[~valid, species_column].dropna().tolist()
    if dropped:
        logger.warning(f"Ignoring unusable foraging radii for: {', '.join(dropped)}")

    return dict(zip(df.loc[valid, species_column].str.strip(), radii[valid].astype(float)))


def load_species_groups(path: Path, species_column: str = "species",
                        group_column: str = "group") -> Dict[str, str]:
    """Load the species -> group reconciliation table."""
    df = pd.read_csv(path, dtype=str).dropna(subset=[species_column, group_column])
    return dict(zip(df[species_column].str.strip(), df[group_column].str.strip()))


def build_colony_observations(
    df: pd.DataFrame,
    radii: Dict[str, float],
    groups: Optional[Dict[str, str]] = None,
    planar_crs: str = "EPSG:5070",
    source_crs: str = SOURCE_CRS,
    strict: bool = False
) -> Tuple[List[ColonyObservation], pd.DataFrame]:
    """
    Convert a colony table into observations in the planar CRS.

    Rows are excluded (not fatal) when the species has no foraging radius,
    the count is missing, non-numeric or negative, or coordinates are missing.

    Args:
        df: Colony table from load_colony_table
        radii: Species -> foraging radius (km)
        groups: Species -> group; species not listed keep their own label
        planar_crs: Projected CRS for buffering
        source_crs: CRS of the latitude/longitude columns
        strict: Raise MissingForagingRadiusError instead of skipping

    Returns:
        (observations, skipped) where skipped holds the excluded rows with a
        'skip_reason' column
    """
    groups = groups or {}
    counts = pd.to_numeric(df["count"], errors="coerce")
    radius = df["species"].map(radii)

    reason = pd.Series("", index=df.index)
    reason[df["latitude"].isna() | df["longitude"].isna()] = "missing coordinates"
    reason[counts.isna()] = "unparseable count"
    reason[counts < 0] = "negative count"
    reason[radius.isna()] = "no foraging radius"

    no_radius = df.loc[radius.isna(), "species"].dropna().unique()
    if strict and len(no_radius) > 0:
        raise MissingForagingRadiusError(str(no_radius[0]))

    skipped = df[reason != ""].assign(skip_reason=reason[reason != ""])
    if len(skipped) > 0:
        summary = skipped["skip_reason"].value_counts().to_dict()
        logger.warning(f"Excluding {len(skipped):,} colony records: {summary}")
        if len(no_radius) > 0:
            logger.warning(f"Species without foraging radius: {', '.join(sorted(no_radius))}")

    kept = df[reason == ""].assign(count=counts[reason == ""], radius_km=radius[reason == ""])
    if len(kept) == 0:
        return [], skipped

    points = gpd.GeoSeries(
        gpd.points_from_xy(kept["longitude"], kept["latitude"]),
        index=kept.index,
        crs=source_crs
    ).to_crs(planar_crs)

    observations = []
    for idx, row in kept.iterrows():
        observations.append(ColonyObservation(
            survey_id=str(row["survey_id"]),
            site_id=str(row["site_id"]),
            species=row["species"],
            group=groups.get(row["species"], row["species"]),
            count=float(row["count"]),
            radius_km=float(row["radius_km"]),
            geometry=points.loc[idx]
        ))

    logger.info(
        f"Built {len(observations):,} colony observations "
        f"({np.sum([o.count for o in observations]):,.0f} birds)"
    )
    return observations, skipped
