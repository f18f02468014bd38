from .records import ColonyObservation, OverlapRecord
from .errors import (
    AllocationError,
    NoAllocableAbundanceError,
    ZeroFloorError,
    MissingForagingRadiusError,
)
from .buffers import build_foraging_buffer, build_colony_buffers
from .overlap import allocate_colony, allocate_colonies
from .aggregator import AbundanceAggregator
from .normalizer import eligible_boxes, normalize_group, normalize_groups
from .pipeline import AllocationResult, ColonyAllocationPipeline

__all__ = [
    "ColonyObservation",
    "OverlapRecord",
    "AllocationError",
    "NoAllocableAbundanceError",
    "ZeroFloorError",
    "MissingForagingRadiusError",
    "build_foraging_buffer",
    "build_colony_buffers",
    "allocate_colony",
    "allocate_colonies",
    "AbundanceAggregator",
    "eligible_boxes",
    "normalize_group",
    "normalize_groups",
    "AllocationResult",
    "ColonyAllocationPipeline",
]
