"""
Shared pytest fixtures for allocator tests.

All geometries are in EPSG:5070 (metres). Distances below are written in km
and multiplied by KM.
"""

import pytest
import geopandas as gpd
from shapely.geometry import Point, box

from src.allocation.records import ColonyObservation

PLANAR_CRS = "EPSG:5070"
KM = 1000.0


def make_colony(x_km=0.0, y_km=0.0, count=1000.0, radius_km=50.0,
                species="COMU", group="murres", site_id="site1", survey_id="s1"):
    """Colony at (x_km, y_km) in planar metres."""
    return ColonyObservation(
        survey_id=survey_id,
        site_id=site_id,
        species=species,
        group=group,
        count=count,
        radius_km=radius_km,
        geometry=Point(x_km * KM, y_km * KM)
    )


def make_grid(cells, boundary=None, botz=None):
    """GeoDataFrame of boxes from (minx, miny, maxx, maxy) tuples in km."""
    n = len(cells)
    return gpd.GeoDataFrame(
        {
            "box_id": list(range(n)),
            "boundary": boundary if boundary is not None else [False] * n,
            "botz": botz if botz is not None else [-100.0] * n,
        },
        geometry=[box(*(v * KM for v in c)) for c in cells],
        crs=PLANAR_CRS
    )


# ============================================================================
# Geometry Fixtures
# ============================================================================

@pytest.fixture
def coastline_land():
    """Land occupying everything east of x = 10 km."""
    return box(10 * KM, -500 * KM, 500 * KM, 500 * KM)


@pytest.fixture
def regular_grid():
    """10 x 10 grid of 20 km boxes covering -100..100 km in both axes."""
    cells = []
    for i in range(10):
        for j in range(10):
            x0 = -100 + i * 20
            y0 = -100 + j * 20
            cells.append((x0, y0, x0 + 20, y0 + 20))
    return make_grid(cells)


@pytest.fixture
def square_sea_land():
    """Land everywhere except a 60 x 60 km square of sea centred on the origin."""
    return box(-200 * KM, -200 * KM, 200 * KM, 200 * KM).difference(
        box(-30 * KM, -30 * KM, 30 * KM, 30 * KM)
    )


@pytest.fixture
def strip_grid():
    """Four vertical strips A-D covering 30%, 30%, 20%, 20% of the sea square."""
    return make_grid([
        (-30, -100, -12, 100),
        (-12, -100, 6, 100),
        (6, -100, 18, 100),
        (18, -100, 30, 100),
    ])


@pytest.fixture
def sample_colonies():
    """Mixed colonies from two groups along the coast."""
    return [
        make_colony(-20, -40, count=500, radius_km=30, species="COMU", group="murres", site_id="a"),
        make_colony(0, 10, count=1200, radius_km=45, species="COMU", group="murres", site_id="b"),
        make_colony(5, 60, count=80, radius_km=20, species="BRAC", group="cormorants", site_id="c"),
        make_colony(-50, 0, count=300, radius_km=15, species="PECO", group="cormorants", site_id="d"),
    ]
