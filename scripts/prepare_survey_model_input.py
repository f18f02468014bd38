#!/usr/bin/env python3
"""
Prepare at-sea survey densities for spatial distribution modelling.

Writes two tables: the fitting table (one row per survey record inside the
Atlantis grid, with projected coordinates in km and distance from shore) and
a sea-only prediction lattice with the same covariates.

The density model itself is fitted elsewhere. Once its predictions on the
lattice exist (a CSV with a "predicted" column, one row per lattice row in the
same order), rerun with --predictions to write per-box abundance in the
box_id, group, abundance layout the zero-floor normalizer reads.

Usage:
    python scripts/prepare_survey_model_input.py [--region ccs] [--species COMU] [--spacing-km 10]

Examples:
    # Fitting table and lattice
    python scripts/prepare_survey_model_input.py --species COMU

    # Per-box abundance from externally fitted lattice predictions
    python scripts/prepare_survey_model_input.py --species COMU \\
        --predictions data/processed/survey_model/predicted_COMU.csv
"""

import argparse
import logging
import sys
from pathlib import Path

import pandas as pd

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.data.atlantis_grid import load_box_grid, load_land_mask
from src.data.regions import get_region
from src.data.surveys import (
    build_model_input,
    build_prediction_lattice,
    load_survey_table,
    predict_box_abundance,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    """Main function to build survey model tables."""
    parser = argparse.ArgumentParser(
        description="Build spatial model input tables from survey densities"
    )
    parser.add_argument('--region', type=str, default='ccs',
                        help='Region registry key (default: ccs)')
    parser.add_argument('--surveys', type=str, default=None,
                        help='Survey density CSV (default: region setting)')
    parser.add_argument('--grid', type=str, default=None,
                        help='Atlantis box polygons (default: region setting)')
    parser.add_argument('--land', type=str, default=None,
                        help='Land polygons (default: region setting)')
    parser.add_argument('--species', type=str, default=None,
                        help='Keep only this species code')
    parser.add_argument('--spacing-km', type=float, default=10.0,
                        help='Prediction lattice spacing in km (default: 10)')
    parser.add_argument('--output-dir', type=str, default='data/processed/survey_model',
                        help='Directory for output tables')
    parser.add_argument('--predictions', type=str, default=None,
                        help='Lattice predictions CSV (column: predicted); writes per-box abundance')
    args = parser.parse_args(argv)

    region = get_region(args.region)
    planar_crs = region["planar_crs"]

    surveys_path = Path(args.surveys or region["surveys"])
    grid_path = Path(args.grid or region["grid"])
    land_path = Path(args.land or region["land"])
    output_dir = Path(args.output_dir)

    for label, path in [("surveys", surveys_path), ("grid", grid_path), ("land", land_path)]:
        if not path.exists():
            logger.error(f"Input {label} not found: {path}")
            return 1

    predictions_path = Path(args.predictions) if args.predictions else None
    if predictions_path is not None and not predictions_path.exists():
        logger.error(f"Predictions not found: {predictions_path}")
        return 1

    surveys = load_survey_table(surveys_path, planar_crs, region["source_crs"], species=args.species)
    grid = load_box_grid(grid_path, planar_crs=planar_crs)
    land = load_land_mask(land_path, planar_crs=planar_crs)

    fit_table = build_model_input(surveys, grid, land)
    lattice = build_prediction_lattice(grid, land, spacing_km=args.spacing_km)

    output_dir.mkdir(parents=True, exist_ok=True)
    suffix = f"_{args.species}" if args.species else ""
    fit_path = output_dir / f"model_input{suffix}.csv"
    lattice_path = output_dir / f"prediction_lattice_{args.spacing_km:g}km.csv"
    fit_table.to_csv(fit_path, index=False)
    lattice.to_csv(lattice_path, index=False)

    logger.info(f"✓ Fitting table: {len(fit_table):,} rows -> {fit_path}")
    logger.info(f"✓ Prediction lattice: {len(lattice):,} rows -> {lattice_path}")

    if predictions_path is not None:
        predicted = pd.read_csv(predictions_path)["predicted"].to_numpy()
        try:
            box_abundance = predict_box_abundance(
                lambda fit, points: predicted, fit_table, lattice, grid, land,
                group=args.species or "survey"
            )
        except ValueError as e:
            logger.error(str(e))
            return 1
        box_path = output_dir / f"box_abundance{suffix}.csv"
        box_abundance.to_csv(box_path, index=False)
        logger.info(f"✓ Box abundance: {len(box_abundance):,} boxes -> {box_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
