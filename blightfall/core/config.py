"""Rules configuration loaded from YAML.

Every tunable constant of the movement, combat, corruption and visibility
rules lives in ``assets/data/rules.yaml``. ``RulesConfig()`` carries the same
defaults so tests and embedders can build one without touching the disk.
"""

import math
import os
from dataclasses import dataclass, field, fields
from typing import Any, Optional

import yaml

from .data import Faction

DEFAULT_RULES_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
    "assets",
    "data",
    "rules.yaml",
)

# YAML section for each config field
_SECTIONS: dict[str, str] = {
    "tiles_per_ap": "movement",
    "orthogonal_cost": "movement",
    "diagonal_cost": "movement",
    "ap_granularity": "movement",
    "ap_per_turn": "turn",
    "melee_damage": "combat",
    "melee_ap_cost": "combat",
    "orthogonal_step_ms": "animation",
    "diagonal_step_ms": "animation",
    "spawn_delay_ms": "corruption",
    "spawn_hp_factor": "corruption",
    "spawn_archetype": "corruption",
    "observer_factions": "visibility",
}


@dataclass(frozen=True)
class RulesConfig:
    """Immutable rule constants for one simulation session."""

    tiles_per_ap: int = 4
    orthogonal_cost: float = 1.0
    diagonal_cost: float = 1.5
    ap_granularity: float = 0.5
    ap_per_turn: float = 2
    melee_damage: int = 25
    melee_ap_cost: float = 1.0
    orthogonal_step_ms: int = 150
    diagonal_step_ms: int = 225
    spawn_delay_ms: int = 1500
    spawn_hp_factor: float = 0.5
    spawn_archetype: str = "zombie"
    observer_factions: tuple[Faction, ...] = field(
        default_factory=lambda: (Faction.PLAYER, Faction.HOSTILE)
    )

    def __post_init__(self):
        if self.tiles_per_ap <= 0:
            raise ValueError(f"tiles_per_ap must be positive, got {self.tiles_per_ap}")
        if self.orthogonal_cost <= 0 or self.diagonal_cost <= 0:
            raise ValueError("Step costs must be positive")
        if self.ap_granularity <= 0:
            raise ValueError(f"ap_granularity must be positive, got {self.ap_granularity}")
        if self.orthogonal_step_ms < 0 or self.diagonal_step_ms < 0 or self.spawn_delay_ms < 0:
            raise ValueError("Durations cannot be negative")

    @property
    def mp_per_granule(self) -> float:
        """Movement points covered by one AP rounding step."""
        return self.tiles_per_ap * self.ap_granularity

    def movement_points_for(self, action_points: float) -> float:
        """Total movement points a budget of action points buys."""
        return max(0.0, action_points) * self.tiles_per_ap

    def ap_cost_for(self, movement_points: float) -> float:
        """Convert a movement point cost to AP, rounded up to the granularity.

        With the defaults: 1-2 MP cost 0.5 AP, 3-4 MP cost 1 AP, 8 MP cost 2 AP.
        """
        if movement_points <= 0:
            return 0.0
        granules = math.ceil(movement_points / self.mp_per_granule - 1e-9)
        return granules * self.ap_granularity

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RulesConfig":
        """Build a config from the nested YAML layout, keeping defaults for missing keys."""
        kwargs: dict[str, Any] = {}
        known = {f.name for f in fields(cls)}

        for section_name, section in (data or {}).items():
            if not isinstance(section, dict):
                raise ValueError(f"Rules section '{section_name}' must be a mapping")
            for key, value in section.items():
                if key not in known or _SECTIONS[key] != section_name:
                    raise ValueError(f"Unknown rules key '{section_name}.{key}'")
                kwargs[key] = value

        if "observer_factions" in kwargs:
            try:
                kwargs["observer_factions"] = tuple(
                    Faction(str(name).lower()) for name in kwargs["observer_factions"]
                )
            except ValueError as e:
                raise ValueError(f"Invalid observer faction: {e}")

        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, path: Optional[str] = None) -> "RulesConfig":
        """Load rules from a YAML file (defaults to the packaged rules.yaml)."""
        yaml_path = path or DEFAULT_RULES_PATH
        try:
            with open(yaml_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            raise FileNotFoundError(f"Rules file not found: {yaml_path}")

        try:
            return cls.from_dict(data or {})
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid rules in {yaml_path}: {e}")
