#!/usr/bin/env python3
"""
Allocate seabird colony counts to Atlantis boxes.

Each colony's count is spread over the sea area within its species' foraging
radius, split across boxes by overlapping area, summed per species group and
normalized to per-box proportions with a zero floor for eligible boxes.

Usage:
    python scripts/allocate_colony_abundance.py [--region ccs] [--colonies PATH] [--output-dir PATH]

Examples:
    # Default California Current inputs
    python scripts/allocate_colony_abundance.py

    # Explicit inputs, single process
    python scripts/allocate_colony_abundance.py \\
        --colonies data/raw/colonies/colony_counts.csv \\
        --radii data/reference/foraging_radii.csv \\
        --grid data/atlantis/CalCurrentV3_Biol.geojson \\
        --land data/boundaries/west_coast_land.shp \\
        --n-processes 1
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict

import pandas as pd

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.allocation import ColonyAllocationPipeline, build_colony_buffers
from src.allocation.errors import MissingForagingRadiusError
from src.data.atlantis_grid import load_box_grid, load_land_mask
from src.data.colonies import (
    build_colony_observations,
    load_colony_table,
    load_foraging_radii,
    load_species_groups,
)
from src.data.regions import get_region
from src.outputs.writers import write_atlantis_distributions, write_group_tables

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def load_group_codes(path: Path) -> Dict[str, str]:
    """Load group -> Atlantis code mapping (columns: group, code)."""
    df = pd.read_csv(path, dtype=str).dropna(subset=["group", "code"])
    return dict(zip(df["group"].str.strip(), df["code"].str.strip()))


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Allocate seabird colony abundance to Atlantis boxes"
    )
    parser.add_argument('--region', type=str, default='ccs',
                        help='Region registry key (default: ccs)')
    parser.add_argument('--colonies', type=str, default=None,
                        help='Colony counts CSV (default: region setting)')
    parser.add_argument('--radii', type=str, default=None,
                        help='Species foraging radius CSV (default: region setting)')
    parser.add_argument('--species-groups', type=str, default=None,
                        help='Species to group CSV (default: region setting, optional)')
    parser.add_argument('--grid', type=str, default=None,
                        help='Atlantis box polygons (default: region setting)')
    parser.add_argument('--land', type=str, default=None,
                        help='Land polygons (default: region setting)')
    parser.add_argument('--group-codes', type=str, default=None,
                        help='Group to Atlantis code CSV for distribution blocks')
    parser.add_argument('--output-dir', type=str, default='data/processed/colony_allocation',
                        help='Directory for output tables')
    parser.add_argument('--n-processes', type=int, default=None,
                        help='Number of parallel processes (default: auto-detect, max 8)')
    parser.add_argument('--strict', action='store_true',
                        help='Fail when a species has no foraging radius instead of skipping it')
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main function to allocate colony abundance."""
    args = parse_args(argv)
    region = get_region(args.region)
    planar_crs = region["planar_crs"]

    colonies_path = Path(args.colonies or region["colonies"])
    radii_path = Path(args.radii or region["radii"])
    groups_path = Path(args.species_groups or region["species_groups"])
    grid_path = Path(args.grid or region["grid"])
    land_path = Path(args.land or region["land"])
    output_dir = Path(args.output_dir)

    for label, path in [("colonies", colonies_path), ("radii", radii_path),
                        ("grid", grid_path), ("land", land_path)]:
        if not path.exists():
            logger.error(f"Input {label} not found: {path}")
            return 1

    logger.info(f"Region: {region['name']} ({planar_crs})")

    colony_df = load_colony_table(colonies_path)
    radii = load_foraging_radii(radii_path)
    if groups_path.exists():
        groups = load_species_groups(groups_path)
    else:
        logger.warning(f"No species group table at {groups_path}, using species labels as groups")
        groups = {}

    try:
        colonies, skipped = build_colony_observations(
            colony_df, radii, groups, planar_crs=planar_crs,
            source_crs=region["source_crs"], strict=args.strict
        )
    except MissingForagingRadiusError as e:
        logger.error(str(e))
        return 1

    if not colonies:
        logger.error("No colony records with a usable count and foraging radius")
        return 1

    grid = load_box_grid(grid_path, planar_crs=planar_crs)
    land = load_land_mask(land_path, planar_crs=planar_crs)

    pipeline = ColonyAllocationPipeline(
        grid, land,
        n_processes=args.n_processes,
        max_botz=region["max_botz"],
        min_botz=region["min_botz"]
    )
    result = pipeline.run(colonies)

    output_dir.mkdir(parents=True, exist_ok=True)

    logger.info("\nWriting outputs...")
    write_group_tables(result.proportions, output_dir)
    result.abundance.to_csv(output_dir / "abundance_all_groups.csv", index=False)
    result.unallocated(colonies).to_csv(output_dir / "colony_allocation_check.csv", index=False)
    if len(skipped) > 0:
        skipped.to_csv(output_dir / "skipped_colonies.csv", index=False)

    buffers = build_colony_buffers(colonies, land, crs=planar_crs)
    buffers.to_file(output_dir / "foraging_buffers.geojson", driver="GeoJSON")

    codes = load_group_codes(Path(args.group_codes)) if args.group_codes else None
    if len(result.proportions) > 0:
        write_atlantis_distributions(result.proportions, output_dir / "distributions.prm", codes)

    if result.failed_groups:
        # Raw abundance for these groups stays in abundance_all_groups.csv
        failed = pd.DataFrame(sorted(result.failed_groups.items()), columns=["group", "reason"])
        failed.to_csv(output_dir / "failed_groups.csv", index=False)
        logger.warning("Groups without allocable abundance:")
        for group, reason in result.failed_groups.items():
            logger.warning(f"  {group}: {reason}")

    logger.info(f"\n✓ Allocation complete: {output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
