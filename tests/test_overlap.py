"""
Tests for apportioning colony counts to grid boxes.
"""

import pytest
from unittest.mock import patch
from shapely.errors import GEOSException

from src.allocation import overlap
from src.allocation.overlap import allocate_colony, allocate_colonies
from conftest import make_colony, make_grid


class TestAllocateColony:
    """Test allocate_colony()."""

    def test_count_conserved_when_grid_covers_buffer(self, regular_grid, coastline_land):
        """All birds are allocated when the buffer lies inside the grid."""
        colony = make_colony(0, 0, count=1000, radius_km=50)
        records = allocate_colony(colony, regular_grid, coastline_land)

        assert len(records) > 1
        assert sum(r.allocated for r in records) == pytest.approx(1000.0, rel=1e-9)
        assert sum(r.proportion for r in records) == pytest.approx(1.0, rel=1e-9)

    def test_partial_coverage_allocates_less(self, coastline_land):
        """Buffer area outside the grid is lost, not redistributed."""
        west_half = make_grid([(-100, -100, 0, 100)])
        colony = make_colony(0, 0, count=1000, radius_km=50)
        records = allocate_colony(colony, west_half, coastline_land)

        total = sum(r.allocated for r in records)
        assert 0 < total < 1000

    def test_example_thirty_thirty_twenty_twenty(self, strip_grid, square_sea_land):
        """1000 birds over boxes covering 30/30/20/20% of the sea area."""
        colony = make_colony(0, 0, count=1000, radius_km=50)
        records = allocate_colony(colony, strip_grid, square_sea_land)

        allocated = {r.cell_id: r.allocated for r in records}
        assert allocated[0] == pytest.approx(300.0)
        assert allocated[1] == pytest.approx(300.0)
        assert allocated[2] == pytest.approx(200.0)
        assert allocated[3] == pytest.approx(200.0)
        assert sum(allocated.values()) == pytest.approx(1000.0)

    def test_zero_radius_produces_no_records(self, regular_grid, coastline_land):
        colony = make_colony(0, 0, radius_km=0.0)
        assert allocate_colony(colony, regular_grid, coastline_land) == []

    def test_inland_colony_produces_no_records(self, regular_grid, coastline_land):
        colony = make_colony(90, 0, radius_km=20.0)
        assert allocate_colony(colony, regular_grid, coastline_land) == []

    def test_records_carry_colony_identity(self, regular_grid, coastline_land):
        colony = make_colony(-40, 0, radius_km=10, group="terns", site_id="x9")
        records = allocate_colony(colony, regular_grid, coastline_land)
        assert records
        for r in records:
            assert r.group == "terns"
            assert r.colony_key == ("s1", "x9", "COMU")
            assert r.intersection_area > 0
            assert r.proportion == pytest.approx(r.intersection_area / r.buffer_area)

    def test_touching_box_without_area_is_skipped(self, coastline_land):
        """A box that only shares an edge with the buffer gets no record."""
        grid = make_grid([(-50, -50, 10, 50), (10, -50, 60, 50)])
        colony = make_colony(0, 0, radius_km=10)
        records = allocate_colony(colony, grid, coastline_land)
        assert [r.cell_id for r in records] == [0]


class TestAllocateColonies:
    """Test allocate_colonies()."""

    def test_sequential_concatenates_in_input_order(self, sample_colonies, regular_grid, coastline_land):
        records, failures = allocate_colonies(sample_colonies, regular_grid, coastline_land, n_processes=1)
        assert failures == []
        sites = []
        for r in records:
            if not sites or sites[-1] != r.colony_key[1]:
                sites.append(r.colony_key[1])
        assert sites == ["a", "b", "c", "d"]

    def test_parallel_matches_sequential(self, regular_grid, coastline_land):
        """The process pool returns the same records as the sequential path."""
        colonies = [
            make_colony(-90 + (i % 9) * 10, -60 + (i // 9) * 10, count=10 + i,
                        radius_km=12, site_id=f"c{i}")
            for i in range(60)
        ]
        sequential, _ = allocate_colonies(colonies, regular_grid, coastline_land, n_processes=1)
        parallel, _ = allocate_colonies(colonies, regular_grid, coastline_land, n_processes=2)
        assert parallel == sequential

    def test_geometry_failure_skips_only_that_colony(self, sample_colonies, regular_grid, coastline_land):
        """A GEOS error on one colony is logged and the others still allocate."""
        real = overlap.allocate_colony

        def flaky(colony, grid, land):
            if colony.site_id == "b":
                raise GEOSException("TopologyException: side location conflict")
            return real(colony, grid, land)

        with patch.object(overlap, "allocate_colony", side_effect=flaky):
            records, failures = allocate_colonies(sample_colonies, regular_grid, coastline_land, n_processes=1)

        assert [key[1] for key, _ in failures] == ["b"]
        assert "TopologyException" in failures[0][1]
        assert {r.colony_key[1] for r in records} == {"a", "c", "d"}
