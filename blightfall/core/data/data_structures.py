"""Spatial data structures shared across the simulation core.

Positions use (y, x) ordering for direct alignment with 2D array access
patterns: the first field is the row, the second the column, so every grid
lookup reads ``array[pos.y, pos.x]``.
"""

from dataclasses import dataclass
import math

import numpy as np
from numpy.typing import NDArray


@dataclass(frozen=True)
class Vector2:
    """2D grid coordinate in (y, x) order."""
    y: int
    x: int

    def __add__(self, other: "Vector2") -> "Vector2":
        """Vector addition."""
        return Vector2(self.y + other.y, self.x + other.x)

    def __sub__(self, other: "Vector2") -> "Vector2":
        """Vector subtraction."""
        return Vector2(self.y - other.y, self.x - other.x)

    def __iter__(self):
        """Make Vector2 iterable for unpacking (y, x order)."""
        yield self.y
        yield self.x

    def __repr__(self) -> str:
        return f"Vector2({self.y}, {self.x})"

    def distance_to(self, other: "Vector2") -> float:
        """Calculate Euclidean distance to another vector."""
        return math.sqrt(self.squared_distance_to(other))

    def squared_distance_to(self, other: "Vector2") -> int:
        """Squared Euclidean distance, exact for integer coordinates."""
        dy = self.y - other.y
        dx = self.x - other.x
        return dx * dx + dy * dy

    def manhattan_distance_to(self, other: "Vector2") -> int:
        """Calculate Manhattan distance to another vector."""
        return abs(self.y - other.y) + abs(self.x - other.x)

    def chebyshev_distance_to(self, other: "Vector2") -> int:
        """Number of king moves between two tiles."""
        return max(abs(self.y - other.y), abs(self.x - other.x))

    def is_adjacent_to(self, other: "Vector2") -> bool:
        """True for the 8 surrounding tiles, False for the tile itself."""
        return self.chebyshev_distance_to(other) == 1

    @classmethod
    def from_xy(cls, x: int, y: int) -> "Vector2":
        """Create Vector2 from screen-style (x, y) arguments."""
        return cls(y, x)

    def to_tuple(self) -> tuple[int, int]:
        """Convert to coordinate tuple (y, x order)."""
        return (self.y, self.x)

    def to_numpy(self) -> NDArray[np.int16]:
        """Convert to numpy array (y, x order)."""
        return np.array([self.y, self.x], dtype=np.int16)


@dataclass(frozen=True)
class PathStep:
    """One step of a movement path, as drawn by the presentation layer."""
    position: Vector2
    is_diagonal: bool

    @property
    def x(self) -> int:
        return self.position.x

    @property
    def y(self) -> int:
        return self.position.y

    def to_dict(self) -> dict[str, object]:
        return {"x": self.x, "y": self.y, "isDiagonal": self.is_diagonal}


# The 8 neighbour offsets, orthogonal first so equal-cost ties favour straight moves
ORTHOGONAL_OFFSETS: tuple[Vector2, ...] = (
    Vector2(-1, 0),
    Vector2(1, 0),
    Vector2(0, -1),
    Vector2(0, 1),
)
DIAGONAL_OFFSETS: tuple[Vector2, ...] = (
    Vector2(-1, -1),
    Vector2(-1, 1),
    Vector2(1, -1),
    Vector2(1, 1),
)
NEIGHBOR_OFFSETS: tuple[Vector2, ...] = ORTHOGONAL_OFFSETS + DIAGONAL_OFFSETS
