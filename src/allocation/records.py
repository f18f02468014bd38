from dataclasses import dataclass, field
from typing import Tuple
from shapely.geometry import Point


@dataclass(frozen=True)
class ColonyObservation:
    """One colony count, located in the planar CRS"""
    survey_id: str
    site_id: str
    species: str
    group: str  # species group the allocator aggregates over
    count: float  # individuals, >= 0
    radius_km: float  # species foraging radius
    geometry: Point = field(compare=False)

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.survey_id, self.site_id, self.species)


@dataclass(frozen=True)
class OverlapRecord:
    """Share of one colony's count that falls in one grid box"""
    colony_key: Tuple[str, str, str]
    group: str
    cell_id: int
    intersection_area: float  # m^2
    buffer_area: float  # m^2
    proportion: float  # intersection_area / buffer_area
    allocated: float  # proportion * colony count
