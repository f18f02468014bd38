"""
Exceptions raised by the colony abundance allocator.

Per-group and per-colony conditions are raised here and collected by the
pipeline so that one bad group or colony never aborts a whole run.
"""


class AllocationError(Exception):
    """Base class for allocation conditions tied to one group or colony."""
    pass


class NoAllocableAbundanceError(AllocationError):
    """Raised when a group has zero total abundance across eligible boxes."""

    def __init__(self, group: str):
        self.group = group
        super().__init__(f"Group '{group}' has no allocable abundance in eligible boxes")


class ZeroFloorError(AllocationError):
    """Raised when the zero-floor compensation would empty the largest box."""

    def __init__(self, group: str, remaining: float):
        self.group = group
        self.remaining = remaining
        super().__init__(
            f"Zero-floor compensation for group '{group}' leaves the largest box "
            f"with proportion {remaining:.6g}"
        )


class MissingForagingRadiusError(AllocationError):
    """Raised in strict mode when a species has no foraging radius."""

    def __init__(self, species: str):
        self.species = species
        super().__init__(f"No foraging radius for species '{species}'")
