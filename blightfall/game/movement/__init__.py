"""Movement range search and incremental path building."""

from .range_calculator import (
    MovementRange,
    MovementRangeEntry,
    RangeCalculator,
    corner_is_cut,
    is_diagonal_offset,
)
from .path_builder import CommittedPath, PathBuilder

__all__ = [
    "MovementRange",
    "MovementRangeEntry",
    "RangeCalculator",
    "corner_is_cut",
    "is_diagonal_offset",
    "CommittedPath",
    "PathBuilder",
]
