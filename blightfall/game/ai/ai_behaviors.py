"""AI Behavior Strategy Classes

Hostile units follow a single greedy rule: strike an adjacent opponent,
otherwise take one step toward the nearest one.
"""

from abc import ABC, abstractmethod
from enum import Enum, auto
from typing import TYPE_CHECKING, Optional

from ...core.data import Vector2

if TYPE_CHECKING:
    from ..entities.unit import Unit
    from ..map import GridWorld


class AIAction(Enum):
    """What a hostile unit decided to do this phase."""
    ATTACK = auto()
    STEP = auto()
    SKIP = auto()


class AIDecision:
    """Represents an AI decision with target information."""

    def __init__(self, action: AIAction, target: Optional[Vector2] = None,
                 target_unit_id: Optional[int] = None, reasoning: str = ""):
        self.action = action
        self.target = target
        self.target_unit_id = target_unit_id
        self.reasoning = reasoning

    def __repr__(self) -> str:
        return f"AIDecision({self.action.name}, target={self.target}, reason={self.reasoning!r})"


class AIBehavior(ABC):
    """Abstract base class for AI behavior strategies."""

    @abstractmethod
    def choose_action(self, unit: "Unit", world: "GridWorld") -> AIDecision:
        """Choose the action for this unit given the current grid."""

    @abstractmethod
    def get_behavior_name(self) -> str:
        """Get the name of this AI behavior."""


def greedy_step(origin: Vector2, target: Vector2) -> Vector2:
    """One tile toward target along the axis with the larger delta.

    Ties (including equal diagonals) resolve toward the vertical axis.
    """
    dy = target.y - origin.y
    dx = target.x - origin.x
    if abs(dx) > abs(dy):
        return Vector2(origin.y, origin.x + (1 if dx > 0 else -1))
    if dy == 0:
        return origin
    return Vector2(origin.y + (1 if dy > 0 else -1), origin.x)


class GreedyMeleeAI(AIBehavior):
    """Attack any adjacent opponent, else step toward the nearest one."""

    def choose_action(self, unit: "Unit", world: "GridWorld") -> AIDecision:
        opponents = [
            other for other in world.units
            if other.alive and other.is_opponent_of(unit)
        ]
        if not opponents:
            return AIDecision(AIAction.SKIP, reasoning="No opponents left")

        adjacent = [other for other in opponents if unit.position.is_adjacent_to(other.position)]
        if adjacent:
            # Lowest HP first, then lowest id for determinism
            victim = min(adjacent, key=lambda other: (other.hp, other.unit_id))
            return AIDecision(
                AIAction.ATTACK,
                target=victim.position,
                target_unit_id=victim.unit_id,
                reasoning=f"Adjacent to {victim.name}",
            )

        nearest = min(
            opponents,
            key=lambda other: (
                unit.position.chebyshev_distance_to(other.position),
                other.unit_id,
            ),
        )
        destination = greedy_step(unit.position, nearest.position)
        if destination == unit.position or world.is_blocked(destination, ignore_unit_id=unit.unit_id):
            return AIDecision(
                AIAction.SKIP,
                target=destination,
                target_unit_id=nearest.unit_id,
                reasoning=f"Path toward {nearest.name} is blocked",
            )

        return AIDecision(
            AIAction.STEP,
            target=destination,
            target_unit_id=nearest.unit_id,
            reasoning=f"Closing on {nearest.name}",
        )

    def get_behavior_name(self) -> str:
        return "Greedy Melee"
