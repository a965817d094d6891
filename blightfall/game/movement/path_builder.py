"""Incremental, backtrackable path preview.

The caller feeds the tile under the pointer as it moves across the grid.
Each request either extends the path by one adjacent step, pops the last step
(the pointer went back to the previous tile), truncates the path (the pointer
crossed an earlier tile), or is refused. The builder only reads the grid and
the unit; it never mutates either.
"""

from dataclasses import dataclass
from typing import Optional

from ...core.config import RulesConfig
from ...core.data import PathStep, Vector2
from ..entities.unit import Unit
from ..map import GridWorld
from .range_calculator import RangeCalculator, corner_is_cut, is_diagonal_offset


@dataclass(frozen=True)
class CommittedPath:
    """Finalized path handed to the turn controller."""
    unit_id: int
    origin: Vector2
    steps: tuple[PathStep, ...]
    mp_cost: float
    ap_cost: float
    attack_target: Optional[Vector2] = None

    @property
    def destination(self) -> Vector2:
        return self.steps[-1].position if self.steps else self.origin

    @property
    def is_empty(self) -> bool:
        return not self.steps and self.attack_target is None


class PathBuilder:
    """Path preview for one unit, validated against the same rules as the range search."""

    def __init__(self, world: GridWorld, unit: Unit, rules: Optional[RulesConfig] = None):
        self.world = world
        self.unit = unit
        self.rules = rules or RulesConfig()
        self._calculator = RangeCalculator(world, self.rules)

        self.origin = unit.position
        self.budget_mp = self.rules.movement_points_for(unit.action_points)
        self._steps: list[PathStep] = []
        self._spent_mp = 0.0
        self.attack_target: Optional[Vector2] = None

    # ============== Read-only views ==============

    @property
    def steps(self) -> list[PathStep]:
        return list(self._steps)

    @property
    def tail(self) -> Vector2:
        return self._steps[-1].position if self._steps else self.origin

    @property
    def mp_cost(self) -> float:
        return self._spent_mp

    @property
    def ap_cost(self) -> float:
        return self.rules.ap_cost_for(self._spent_mp)

    @property
    def remaining_mp(self) -> float:
        return self.budget_mp - self._spent_mp

    @property
    def nodes(self) -> list[Vector2]:
        """Origin followed by every step position."""
        return [self.origin] + [step.position for step in self._steps]

    def __len__(self) -> int:
        return len(self._steps)

    # ============== Editing ==============

    def try_extend(self, position: Vector2) -> bool:
        """Feed the next pointer tile. Returns True when the preview changed."""
        if self.attack_target is not None:
            # Any new request first withdraws the melee intent
            self.attack_target = None
            if position == self.tail:
                return True

        nodes = self.nodes
        if len(nodes) >= 2 and position == nodes[-2]:
            self._pop()
            return True

        if position in nodes:
            if position == nodes[-1]:
                return False
            self._truncate(nodes.index(position))
            return True

        if self._is_attack_request(position):
            self.attack_target = position
            return True

        return self._append(position)

    def clear(self) -> None:
        """Discard the preview; the grid and the unit are untouched."""
        self._steps.clear()
        self._spent_mp = 0.0
        self.attack_target = None

    def commit(self) -> Optional[CommittedPath]:
        """Finalize the preview.

        Returns None when there is nothing to commit or when the unit's budget
        no longer covers the path (stale preview).
        """
        if not self._steps and self.attack_target is None:
            return None
        if self.unit.position != self.origin or not self.unit.alive:
            return None

        ap_cost = self.ap_cost
        if self.attack_target is not None:
            ap_cost += self.rules.melee_ap_cost
        if ap_cost > self.unit.action_points + 1e-9 or self._spent_mp > self.budget_mp:
            return None

        return CommittedPath(
            unit_id=self.unit.unit_id,
            origin=self.origin,
            steps=tuple(self._steps),
            mp_cost=self._spent_mp,
            ap_cost=ap_cost,
            attack_target=self.attack_target,
        )

    # ============== Internals ==============

    def _append(self, position: Vector2) -> bool:
        tail = self.tail
        blocked = self.world.blocked_mask(ignore_unit_id=self.unit.unit_id)
        if not self._calculator.can_step(tail, position, blocked):
            return False

        diagonal = is_diagonal_offset(tail, position)
        cost = self._calculator.step_cost(diagonal)
        if self.remaining_mp - cost < 0:
            return False

        self._steps.append(PathStep(position, diagonal))
        self._spent_mp += cost
        return True

    def _pop(self) -> None:
        step = self._steps.pop()
        self._spent_mp -= self._calculator.step_cost(step.is_diagonal)

    def _truncate(self, node_index: int) -> None:
        """Keep the first node_index steps (node 0 is the origin)."""
        del self._steps[node_index:]
        self._spent_mp = sum(self._calculator.step_cost(step.is_diagonal) for step in self._steps)

    def _is_attack_request(self, position: Vector2) -> bool:
        """Adjacent living opponent that the unit can still afford to strike."""
        target = self.world.get_unit_at(position)
        if target is None or not target.is_opponent_of(self.unit):
            return False

        tail = self.tail
        if not tail.is_adjacent_to(position):
            return False
        blocked = self.world.blocked_mask(ignore_unit_id=self.unit.unit_id)
        if corner_is_cut(tail, position, blocked):
            return False

        return self.ap_cost + self.rules.melee_ap_cost <= self.unit.action_points + 1e-9
