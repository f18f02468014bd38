import pytest

from src.data import regions


class TestRegionRegistry:

    def test_ccs_registered(self):
        region = regions.get_region("ccs")
        assert region["name"] == "California Current"
        assert region["source_crs"] == "EPSG:4326"
        assert region["planar_crs"] == "EPSG:5070"
        assert region["max_botz"] == 0.0

    def test_default_paths_under_data_dir(self):
        region = regions.get_region("ccs")
        for key in ["grid", "land", "colonies", "radii", "species_groups", "surveys"]:
            assert regions.DATA_DIR in region[key].parents

    def test_unknown_region(self):
        with pytest.raises(KeyError, match="Known regions: ccs"):
            regions.get_region("gulf_of_alaska")
