"""Cost-aware movement range search.

Uniform-cost (Dijkstra) search over the 8 neighbour directions. Orthogonal
steps cost ``orthogonal_cost`` movement points (MP), diagonal steps
``diagonal_cost``. A unit's budget is ``action_points * tiles_per_ap`` MP and
a tile is reachable while the budget stays >= 0 after paying for it.

Corner cutting: a diagonal step from (x, y) to (x+dx, y+dy) is refused only
when *both* flanking tiles (x+dx, y) and (x, y+dy) are blocked by an obstacle
or a unit. One blocked flank still lets the diagonal through.
"""

import heapq
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from itertools import count
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from ...core.config import RulesConfig
from ...core.data import NEIGHBOR_OFFSETS, PathStep, Vector2
from ..entities.unit import Unit
from ..map import GridWorld


@dataclass(frozen=True)
class MovementRangeEntry:
    """One reachable tile with its cheapest cost and a canonical path."""
    target: Vector2
    mp_cost: float
    ap_cost: float
    path: tuple[PathStep, ...]

    @property
    def diagonal_flags(self) -> tuple[bool, ...]:
        return tuple(step.is_diagonal for step in self.path)


@dataclass
class MovementRange(Mapping):
    """Reachable tiles of one unit, keyed by position, iterated by ascending cost."""
    origin: Vector2
    budget_mp: float
    _entries: dict[Vector2, MovementRangeEntry] = field(default_factory=dict)

    def __getitem__(self, position: Vector2) -> MovementRangeEntry:
        return self._entries[position]

    def __iter__(self) -> Iterator[Vector2]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def path_to(self, position: Vector2) -> list[PathStep]:
        """Path to a tile, or an empty list when it is unreachable."""
        entry = self._entries.get(position)
        return list(entry.path) if entry else []

    def ap_costs(self) -> dict[Vector2, float]:
        """Position -> AP cost, for range highlighting."""
        return {pos: entry.ap_cost for pos, entry in self._entries.items()}


def is_diagonal_offset(origin: Vector2, destination: Vector2) -> bool:
    return origin.x != destination.x and origin.y != destination.y


def corner_is_cut(origin: Vector2, destination: Vector2, blocked: NDArray[np.bool_]) -> bool:
    """True when a diagonal move squeezes between two blocked flanking tiles."""
    if not is_diagonal_offset(origin, destination):
        return False
    # Both flanks share a row/column with an in-bounds endpoint, so they are in bounds
    flank_x_blocked = bool(blocked[origin.y, destination.x])
    flank_y_blocked = bool(blocked[destination.y, origin.x])
    return flank_x_blocked and flank_y_blocked


class RangeCalculator:
    """Computes the reachable set of a unit from the live grid state."""

    def __init__(self, world: GridWorld, rules: Optional[RulesConfig] = None):
        self.world = world
        self.rules = rules or RulesConfig()

    def step_cost(self, is_diagonal: bool) -> float:
        return self.rules.diagonal_cost if is_diagonal else self.rules.orthogonal_cost

    def can_step(
        self, origin: Vector2, destination: Vector2, blocked: NDArray[np.bool_]
    ) -> bool:
        """Check a single adjacent move against bounds, blocking and the corner rule."""
        if not origin.is_adjacent_to(destination):
            return False
        if not self.world.in_bounds(destination):
            return False
        if blocked[destination.y, destination.x]:
            return False
        return not corner_is_cut(origin, destination, blocked)

    def calculate(self, unit: Unit) -> MovementRange:
        """Calculate the full reachable set of a unit.

        A unit without AP (or dead) yields an empty range, not an error.
        """
        budget = self.rules.movement_points_for(unit.action_points)
        return self.calculate_from(unit.position, budget, ignore_unit_id=unit.unit_id)

    def calculate_from(
        self,
        origin: Vector2,
        budget_mp: float,
        ignore_unit_id: Optional[int] = None,
    ) -> MovementRange:
        """Dijkstra flood from origin with budget_mp movement points."""
        result = MovementRange(origin=origin, budget_mp=budget_mp)
        if budget_mp <= 0 or not self.world.in_bounds(origin):
            return result

        blocked = self.world.blocked_mask(ignore_unit_id)

        best_cost: dict[Vector2, float] = {origin: 0.0}
        came_from: dict[Vector2, Vector2] = {}
        # Sequence counter keeps heap ordering stable for equal costs
        sequence = count()
        open_set: list[tuple[float, int, Vector2]] = [(0.0, next(sequence), origin)]
        settled: set[Vector2] = set()

        while open_set:
            cost, _, current = heapq.heappop(open_set)
            if current in settled:
                continue
            settled.add(current)

            if current != origin:
                result._entries[current] = MovementRangeEntry(
                    target=current,
                    mp_cost=cost,
                    ap_cost=self.rules.ap_cost_for(cost),
                    path=tuple(self._reconstruct(came_from, origin, current)),
                )

            for offset in NEIGHBOR_OFFSETS:
                neighbor = current + offset
                if neighbor in settled or not self.can_step(current, neighbor, blocked):
                    continue

                new_cost = cost + self.step_cost(is_diagonal_offset(current, neighbor))
                if budget_mp - new_cost < 0:
                    continue

                if new_cost < best_cost.get(neighbor, float("inf")):
                    best_cost[neighbor] = new_cost
                    came_from[neighbor] = current
                    heapq.heappush(open_set, (new_cost, next(sequence), neighbor))

        return result

    @staticmethod
    def _reconstruct(
        came_from: dict[Vector2, Vector2], origin: Vector2, target: Vector2
    ) -> list[PathStep]:
        steps: list[PathStep] = []
        current = target
        while current != origin:
            previous = came_from[current]
            steps.append(PathStep(current, is_diagonal_offset(previous, current)))
            current = previous
        steps.reverse()
        return steps
