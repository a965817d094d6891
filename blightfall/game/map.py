"""Static grid environment and the unit roster.

GridWorld owns two numpy layers indexed ``[y, x]``:
- ``walkable``: bool, False for obstacles and corrupted tiles
- ``occupancy``: int32 unit id per tile, -1 for empty

The roster (unit id -> Unit) and the occupancy layer must always agree;
``check_integrity`` asserts that invariant.
"""

from dataclasses import dataclass, field
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from ..core.data import Faction, Vector2
from .entities.unit import Unit

EMPTY = -1
OBSTACLE_CHARS = frozenset("#X")


@dataclass
class GridWorld:
    width: int
    height: int
    walkable: np.ndarray = field(init=False)
    occupancy: np.ndarray = field(init=False)  # Stores unit ids (-1 for empty)
    _units: dict[int, Unit] = field(default_factory=dict, init=False)
    _next_unit_id: int = field(default=1, init=False)

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Grid dimensions must be positive, got {self.width}x{self.height}")

        self.walkable = np.ones((self.height, self.width), dtype=np.bool_)
        self.occupancy = np.full((self.height, self.width), EMPTY, dtype=np.int32)

    @classmethod
    def from_rows(cls, rows: list[str]) -> "GridWorld":
        """Build a grid from text rows: '#' or 'X' is an obstacle, anything else is floor.

        Example:
            GridWorld.from_rows([
                "....",
                ".#..",
                "....",
            ])
        """
        rows = [row for row in rows if row]
        if not rows:
            raise ValueError("No rows given for grid")

        width = len(rows[0])
        if any(len(row) != width for row in rows):
            raise ValueError("All grid rows must have the same length")

        world = cls(width, len(rows))
        for y, row in enumerate(rows):
            for x, cell in enumerate(row):
                if cell in OBSTACLE_CHARS:
                    world.walkable[y, x] = False
        return world

    # ============== Tile Queries ==============

    def in_bounds(self, position: Vector2) -> bool:
        return 0 <= position.x < self.width and 0 <= position.y < self.height

    def is_walkable(self, position: Vector2) -> bool:
        """False if off-grid, an obstacle, or corrupted."""
        if not self.in_bounds(position):
            return False
        return bool(self.walkable[position.y, position.x])

    def set_walkable(self, position: Vector2, walkable: bool) -> None:
        """Flip a tile's walkability (used by the corruption rule)."""
        assert self.in_bounds(position), f"Invalid position: {position}"
        self.walkable[position.y, position.x] = walkable

    def is_occupied(self, position: Vector2) -> bool:
        """True if a living unit stands on the tile."""
        return self.get_unit_at(position) is not None

    def is_blocked(self, position: Vector2, ignore_unit_id: Optional[int] = None) -> bool:
        """Not walkable, or occupied by a unit other than ignore_unit_id."""
        if not self.is_walkable(position):
            return True
        occupant = int(self.occupancy[position.y, position.x])
        return occupant != EMPTY and occupant != ignore_unit_id

    def blocked_mask(self, ignore_unit_id: Optional[int] = None) -> NDArray[np.bool_]:
        """Boolean mask of tiles blocked by obstacles or by other units."""
        occupied = self.occupancy != EMPTY
        if ignore_unit_id is not None:
            occupied &= self.occupancy != ignore_unit_id
        return ~self.walkable | occupied

    # ============== Roster ==============

    @property
    def units(self) -> list[Unit]:
        """All living units on the grid, ordered by id."""
        return [self._units[uid] for uid in sorted(self._units)]

    def units_of(self, faction: Faction) -> list[Unit]:
        return [unit for unit in self.units if unit.faction is faction]

    def next_unit_id(self) -> int:
        """Reserve a fresh id. Ids are never reused within a session."""
        unit_id = self._next_unit_id
        self._next_unit_id += 1
        return unit_id

    def add_unit(self, unit: Unit) -> bool:
        """Add unit to the grid and return success status.

        A unit may stand on an unwalkable tile (risen from a corrupted tile),
        but never on another unit or off the grid.
        """
        if not unit.alive or unit.unit_id in self._units:
            return False
        if not self.in_bounds(unit.position) or self.is_occupied(unit.position):
            return False

        self._units[unit.unit_id] = unit
        self.occupancy[unit.position.y, unit.position.x] = unit.unit_id
        self._next_unit_id = max(self._next_unit_id, unit.unit_id + 1)
        return True

    def remove_unit(self, unit_id: int) -> Optional[Unit]:
        """Remove unit by ID and clear its tile."""
        unit = self._units.pop(unit_id, None)
        if unit is None:
            return None

        assert self.occupancy[unit.position.y, unit.position.x] == unit_id, (
            f"Unit {unit_id} missing from occupancy at {unit.position}"
        )
        self.occupancy[unit.position.y, unit.position.x] = EMPTY
        return unit

    def get_unit(self, unit_id: int) -> Optional[Unit]:
        return self._units.get(unit_id)

    def get_unit_at(self, position: Vector2) -> Optional[Unit]:
        """Get unit at position using the occupancy layer."""
        if not self.in_bounds(position):
            return None

        unit_id = int(self.occupancy[position.y, position.x])
        if unit_id == EMPTY:
            return None

        unit = self._units.get(unit_id)
        assert unit is not None and unit.position == position, (
            f"Occupancy at {position} points to unit {unit_id} which is not there"
        )
        return unit if unit.alive else None

    def move_unit(self, unit_id: int, position: Vector2) -> bool:
        """Move unit one or more tiles and update occupancy."""
        unit = self._units.get(unit_id)
        if unit is None:
            return False
        if self.is_blocked(position, ignore_unit_id=unit_id):
            return False

        old_position = unit.position
        assert self.occupancy[old_position.y, old_position.x] == unit_id, (
            f"Unit {unit_id} missing from occupancy at {old_position}"
        )
        self.occupancy[old_position.y, old_position.x] = EMPTY
        unit.position = position
        self.occupancy[position.y, position.x] = unit_id
        return True

    def check_integrity(self) -> None:
        """Assert that roster and occupancy describe the same placement."""
        for unit_id, unit in self._units.items():
            assert unit.alive, f"Dead unit {unit_id} still on the roster"
            assert self.in_bounds(unit.position), f"Unit {unit_id} is off the grid"
            assert self.occupancy[unit.position.y, unit.position.x] == unit_id, (
                f"Unit {unit_id} present in roster but absent from occupancy"
            )
        occupied = int(np.count_nonzero(self.occupancy != EMPTY))
        assert occupied == len(self._units), (
            f"Occupancy holds {occupied} units but roster has {len(self._units)}"
        )

    def __contains__(self, unit_id: int) -> bool:
        return unit_id in self._units

    def __len__(self) -> int:
        return len(self._units)
