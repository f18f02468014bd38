"""
At-sea survey densities joined to the Atlantis grid.

Transect observations are projected, tagged with the box they fall in and a
distance-from-shore covariate, and flattened into the table a spatial
regression model is fitted on. Predictions from that model on a regular
sea-only lattice are turned back into per-box abundance.
"""

from typing import Callable, Optional
from pathlib import Path
import logging

import numpy as np
import pandas as pd
import geopandas as gpd
from shapely.geometry.base import BaseGeometry

from .regions import SOURCE_CRS

logger = logging.getLogger(__name__)

SURVEY_COLUMNS = ["latitude", "longitude", "density", "season"]
MODEL_COLUMNS = ["x_km", "y_km", "dist_shore_km"]

# model(fit_table, predict_table) -> predicted density per predict_table row
DensityModel = Callable[[pd.DataFrame, pd.DataFrame], np.ndarray]


def load_survey_table(
    path: Path,
    planar_crs: str,
    source_crs: str = SOURCE_CRS,
    species: Optional[str] = None
) -> gpd.GeoDataFrame:
    """
    Load transect density records as projected points.

    Args:
        path: CSV with latitude, longitude, density, season (optional species)
        planar_crs: Projected CRS for distance calculations
        source_crs: CRS of the coordinates
        species: Keep only this species when a species column is present

    Returns:
        GeoDataFrame in planar_crs; rows with missing coordinates or
        non-numeric density are dropped
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Survey file not found: {path}")

    df = pd.read_csv(path)
    missing = [c for c in SURVEY_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Survey file {path} is missing columns: {missing}")

    if species is not None and "species" in df.columns:
        df = df[df["species"] == species]

    df = df.assign(density=pd.to_numeric(df["density"], errors="coerce"))
    usable = df["latitude"].notna() & df["longitude"].notna() & df["density"].notna()
    if (~usable).any():
        logger.warning(f"Dropping {int((~usable).sum()):,} survey rows with missing values")
    df = df[usable]

    gdf = gpd.GeoDataFrame(
        df,
        geometry=gpd.points_from_xy(df.longitude, df.latitude),
        crs=source_crs
    ).to_crs(planar_crs)

    logger.info(f"Loaded {len(gdf):,} survey records from {path}")
    return gdf


def add_distance_to_shore(points: gpd.GeoDataFrame, land: BaseGeometry) -> gpd.GeoDataFrame:
    """Return a copy of points with a dist_shore_km column (planar metres / 1000)."""
    return points.assign(dist_shore_km=points.geometry.distance(land) / 1000.0)


def _join_boxes(points: gpd.GeoDataFrame, grid: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """Tag each point with the box it falls in; points outside every box are dropped."""
    joined = gpd.sjoin(points, grid[["box_id", "geometry"]], how="inner", predicate="within")
    # A point on a shared edge can match two boxes; keep the first
    joined = joined[~joined.index.duplicated(keep="first")]
    return joined.drop(columns=["index_right"])


def build_model_input(
    surveys: gpd.GeoDataFrame,
    grid: gpd.GeoDataFrame,
    land: BaseGeometry
) -> pd.DataFrame:
    """
    Build the flat table the spatial regression is fitted on.

    Returns:
        DataFrame with x_km, y_km, dist_shore_km, density, season, box_id
    """
    joined = _join_boxes(add_distance_to_shore(surveys, land), grid)
    dropped = len(surveys) - len(joined)
    if dropped > 0:
        logger.info(f"  {dropped:,} survey points fall outside the box grid")

    return pd.DataFrame({
        "x_km": joined.geometry.x / 1000.0,
        "y_km": joined.geometry.y / 1000.0,
        "dist_shore_km": joined["dist_shore_km"],
        "density": joined["density"],
        "season": joined["season"],
        "box_id": joined["box_id"],
    }).reset_index(drop=True)


def build_prediction_lattice(
    grid: gpd.GeoDataFrame,
    land: Optional[BaseGeometry],
    spacing_km: float = 10.0
) -> pd.DataFrame:
    """
    Regular lattice of sea points covering the grid, with model covariates.

    Args:
        grid: Boxes in planar CRS
        land: Land mask; lattice points on land are dropped
        spacing_km: Lattice spacing

    Returns:
        DataFrame with x_km, y_km, dist_shore_km, box_id
    """
    if spacing_km <= 0:
        raise ValueError(f"spacing_km must be positive, got {spacing_km}")

    spacing = spacing_km * 1000.0
    minx, miny, maxx, maxy = grid.total_bounds
    xs = np.arange(minx + spacing / 2, maxx, spacing)
    ys = np.arange(miny + spacing / 2, maxy, spacing)
    xx, yy = np.meshgrid(xs, ys)

    points = gpd.GeoDataFrame(
        geometry=gpd.points_from_xy(xx.ravel(), yy.ravel()),
        crs=grid.crs
    )
    if land is not None and not land.is_empty:
        points = points[~points.geometry.within(land)]
        points = add_distance_to_shore(points, land)
    else:
        points = points.assign(dist_shore_km=np.nan)

    joined = _join_boxes(points, grid)
    logger.info(f"Prediction lattice: {len(joined):,} sea points at {spacing_km:g} km spacing")

    return pd.DataFrame({
        "x_km": joined.geometry.x / 1000.0,
        "y_km": joined.geometry.y / 1000.0,
        "dist_shore_km": joined["dist_shore_km"],
        "box_id": joined["box_id"],
    }).reset_index(drop=True)


def predict_box_abundance(
    model: DensityModel,
    fit_table: pd.DataFrame,
    lattice: pd.DataFrame,
    grid: gpd.GeoDataFrame,
    land: Optional[BaseGeometry] = None,
    group: str = "survey"
) -> pd.DataFrame:
    """
    Turn lattice predictions into per-box abundance.

    abundance = mean predicted density in the box x box sea area (km^2).
    Boxes without lattice points get 0.

    Args:
        model: Opaque fitted-model callable, see DensityModel
        fit_table: Table from build_model_input
        lattice: Table from build_prediction_lattice
        grid: Boxes in planar CRS
        land: Land removed from box areas
        group: Label for the group column

    Returns:
        DataFrame with box_id, group, abundance for every box
    """
    predicted = np.asarray(model(fit_table, lattice[MODEL_COLUMNS]), dtype=float)
    if predicted.shape != (len(lattice),):
        raise ValueError(
            f"Model returned {predicted.shape} predictions for {len(lattice)} lattice points"
        )
    if not np.all(np.isfinite(predicted)):
        raise ValueError("Model returned non-finite predicted densities")

    mean_density = (
        lattice.assign(predicted=np.clip(predicted, 0.0, None))
        .groupby("box_id")["predicted"].mean()
    )

    sea = grid.geometry
    if land is not None and not land.is_empty:
        sea = sea.difference(land)
    sea_km2 = pd.Series((sea.area / 1e6).values, index=grid["box_id"].values)

    abundance = (mean_density.reindex(sea_km2.index, fill_value=0.0) * sea_km2)
    return pd.DataFrame({
        "box_id": sea_km2.index.astype(int),
        "group": group,
        "abundance": abundance.values,
    })
