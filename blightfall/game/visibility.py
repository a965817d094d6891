"""Tri-state fog of war.

Each tile is UNEXPLORED, EXPLORED or VISIBLE. A recompute marks every tile
inside any observer's vision disk (squared Euclidean distance <= radius²)
VISIBLE and merges it into the permanent explored layer; tiles that drop out
of sight fall back to EXPLORED. Nothing ever returns to UNEXPLORED except
through an explicit reset().
"""

from collections.abc import Iterable

import numpy as np
from numpy.typing import NDArray

from ..core.data import Vector2, VisibilityState
from .entities.unit import Unit


class VisibilityMap:
    """Per-tile visibility derived from living units' positions and vision radii."""

    def __init__(self, width: int, height: int):
        if width <= 0 or height <= 0:
            raise ValueError(f"Visibility grid dimensions must be positive, got {width}x{height}")
        self.width = width
        self.height = height
        self._explored = np.zeros((height, width), dtype=np.bool_)
        self._visible = np.zeros((height, width), dtype=np.bool_)
        # Coordinate grids reused by every disk computation
        self._yy, self._xx = np.ogrid[0:height, 0:width]

    def vision_disk(self, center: Vector2, radius: int) -> NDArray[np.bool_]:
        """Mask of tiles within radius of center, clipped to the grid."""
        dy = self._yy - center.y
        dx = self._xx - center.x
        return (dx * dx + dy * dy) <= radius * radius

    def recompute(self, units: Iterable[Unit]) -> NDArray[np.bool_]:
        """Rebuild the visible layer from the given units and merge it into explored.

        Dead units are ignored. Returns the new visible mask (a copy).
        """
        visible = np.zeros((self.height, self.width), dtype=np.bool_)
        for unit in units:
            if not unit.alive:
                continue
            visible |= self.vision_disk(unit.position, unit.vision_range)

        self._visible = visible
        self._explored |= visible
        return visible.copy()

    def reset(self) -> None:
        """Forget everything, for a new session."""
        self._explored[:] = False
        self._visible[:] = False

    # ============== Read-only snapshots ==============

    @property
    def grid(self) -> NDArray[np.int8]:
        """Full tri-state grid as VisibilityState values, indexed [y, x]."""
        states = np.full((self.height, self.width), VisibilityState.UNEXPLORED, dtype=np.int8)
        states[self._explored] = VisibilityState.EXPLORED
        states[self._visible] = VisibilityState.VISIBLE
        states.setflags(write=False)
        return states

    def state_at(self, position: Vector2) -> VisibilityState:
        if not (0 <= position.x < self.width and 0 <= position.y < self.height):
            return VisibilityState.UNEXPLORED
        if self._visible[position.y, position.x]:
            return VisibilityState.VISIBLE
        if self._explored[position.y, position.x]:
            return VisibilityState.EXPLORED
        return VisibilityState.UNEXPLORED

    def is_visible(self, position: Vector2) -> bool:
        return self.state_at(position) is VisibilityState.VISIBLE

    def visible_tiles(self) -> frozenset[Vector2]:
        y_coords, x_coords = np.nonzero(self._visible)
        return frozenset(Vector2(int(y), int(x)) for y, x in zip(y_coords, x_coords))

    @property
    def visible_count(self) -> int:
        return int(np.count_nonzero(self._visible))

    @property
    def explored_count(self) -> int:
        return int(np.count_nonzero(self._explored))
