"""Unit state for the simulation roster.

Units are plain data owned by the GridWorld roster and addressed by a stable
integer id. Position changes go through ``GridWorld.move_unit`` so that the
occupancy index stays in sync with the roster.
"""

from dataclasses import dataclass

from ...core.data import Faction, Vector2


@dataclass
class Unit:
    """A single unit on the grid.

    Examples:
        unit = Unit(unit_id=1, faction=Faction.PLAYER, position=Vector2(1, 1),
                    action_points=2, vision_range=5, hp=100, max_hp=100)
        if unit.alive and not unit.busy and unit.action_points > 0:
            ...
    """

    unit_id: int
    faction: Faction
    position: Vector2
    action_points: float = 0
    vision_range: int = 3
    hp: int = 1
    max_hp: int = 1
    alive: bool = True
    busy: bool = False
    archetype: str = "survivor"
    name: str = ""

    def __post_init__(self):
        if self.max_hp <= 0:
            raise ValueError(f"Unit {self.unit_id} needs positive max_hp, got {self.max_hp}")
        if self.vision_range < 0:
            raise ValueError(f"Unit {self.unit_id} has negative vision range")
        self.hp = min(self.hp, self.max_hp)
        if not self.name:
            self.name = f"{self.archetype.title()} {self.unit_id}"

    @property
    def is_player(self) -> bool:
        return self.faction is Faction.PLAYER

    @property
    def is_hostile(self) -> bool:
        return self.faction is Faction.HOSTILE

    @property
    def can_act(self) -> bool:
        """Alive, idle and with budget left."""
        return self.alive and not self.busy and self.action_points > 0

    def is_opponent_of(self, other: "Unit") -> bool:
        return self.faction is not other.faction

    def take_damage(self, amount: int) -> int:
        """Reduce HP (never below zero) and return the damage actually dealt."""
        damage = max(0, int(amount))
        new_hp = max(0, self.hp - damage)
        dealt = self.hp - new_hp
        self.hp = new_hp
        return dealt

    def reset_action_points(self, action_points: float) -> None:
        """Restore the per-turn budget."""
        self.action_points = action_points

    def spend_action_points(self, amount: float) -> float:
        """Deduct AP (never below zero) and return what was actually spent."""
        spent = min(self.action_points, max(0.0, amount))
        self.action_points -= spent
        return spent
