"""
Tests for Atlantis box grid and land mask loading.
"""

import geopandas as gpd
import pytest
from shapely.geometry import Polygon, box

from src.data.atlantis_grid import dissolve_land, load_box_grid, load_land_mask, prepare_box_grid


def bgm_export(**columns):
    """Box polygons with arbitrary attribute columns, in lon/lat."""
    geometries = [box(-124, 37, -123, 38), box(-123, 37, -122, 38), box(-125, 37, -124, 38)]
    return gpd.GeoDataFrame(columns, geometry=geometries, crs="EPSG:4326")


class TestPrepareBoxGrid:
    """Test prepare_box_grid()."""

    def test_aliases_normalised(self):
        gdf = bgm_export(**{".boxid": [2, 0, 1], ".isBoundary": ["FALSE", "TRUE", "false"],
                            ".botz": ["-200", "-50", "10"]})
        grid = prepare_box_grid(gdf)

        assert list(grid.columns) == ["box_id", "boundary", "botz", "geometry"]
        assert list(grid["box_id"]) == [0, 1, 2]
        assert list(grid["boundary"]) == [True, False, False]
        assert list(grid["botz"]) == [-50.0, 10.0, -200.0]

    def test_missing_boundary_column_means_none_flagged(self):
        grid = prepare_box_grid(bgm_export(box_id=[0, 1, 2], botz=[-1.0, -2.0, -3.0]))
        assert not grid["boundary"].any()

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValueError, match="Duplicate box ids"):
            prepare_box_grid(bgm_export(box_id=[0, 1, 1], botz=[-1.0, -2.0, -3.0]))

    def test_missing_botz_rejected(self):
        with pytest.raises(ValueError, match="botz"):
            prepare_box_grid(bgm_export(box_id=[0, 1, 2]))

    def test_explicit_column_must_exist(self):
        with pytest.raises(ValueError, match="not found"):
            prepare_box_grid(bgm_export(box_id=[0, 1, 2], botz=[-1.0, -2.0, -3.0]),
                             id_column="BOX_NUM")

    def test_projected_to_planar(self):
        grid = prepare_box_grid(bgm_export(box_id=[0, 1, 2], botz=[-1.0, -2.0, -3.0]),
                                planar_crs="EPSG:5070")
        assert grid.crs == "EPSG:5070"
        assert grid.geometry.area.min() > 1e9

    def test_invalid_polygon_repaired(self):
        bowtie = Polygon([(0, 0), (1, 1), (1, 0), (0, 1), (0, 0)])
        gdf = gpd.GeoDataFrame({"box_id": [0], "botz": [-5.0]}, geometry=[bowtie], crs="EPSG:5070")
        grid = prepare_box_grid(gdf)
        assert grid.geometry.is_valid.all()


class TestFileLoading:
    """Test load_box_grid() and load_land_mask() against files on disk."""

    def test_load_box_grid_geojson(self, tmp_path):
        path = tmp_path / "boxes.geojson"
        bgm_export(box_id=[0, 1, 2], boundary=[True, False, False],
                   botz=[-10.0, -20.0, -30.0]).to_file(path, driver="GeoJSON")

        grid = load_box_grid(path, planar_crs="EPSG:5070")
        assert len(grid) == 3
        assert grid.crs == "EPSG:5070"
        assert list(grid["boundary"]) == [True, False, False]

    def test_load_box_grid_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_box_grid(tmp_path / "missing.geojson")

    def test_load_land_mask_dissolves(self, tmp_path):
        path = tmp_path / "land.geojson"
        gpd.GeoDataFrame(
            {"name": ["mainland", "island"]},
            geometry=[box(-122, 36, -120, 39), box(-121.5, 37, -121, 38)],
            crs="EPSG:4326"
        ).to_file(path, driver="GeoJSON")

        land = load_land_mask(path, planar_crs="EPSG:5070")
        assert land.geom_type == "Polygon"
        assert land.area > 0

    def test_dissolve_land_multiple_parts(self):
        land = gpd.GeoDataFrame(geometry=[box(0, 0, 1, 1), box(5, 5, 6, 6)])
        assert dissolve_land(land).geom_type == "MultiPolygon"
