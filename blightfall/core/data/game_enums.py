"""Centralized game enums.

Single source of truth for factions, visibility states and turn phases.
"""

from enum import Enum, IntEnum, auto


class Faction(Enum):
    """Faction tags for units."""
    PLAYER = "player"
    HOSTILE = "hostile"

    @property
    def opponent(self) -> "Faction":
        return Faction.HOSTILE if self is Faction.PLAYER else Faction.PLAYER


class VisibilityState(IntEnum):
    """Per-tile fog of war state.

    Stored as int8 in the visibility grid, so values must stay small.
    """
    UNEXPLORED = 0
    EXPLORED = 1
    VISIBLE = 2


class TurnPhase(Enum):
    """Session-wide turn phase."""
    PLAYER_PHASE = auto()
    HOSTILE_PHASE = auto()


FACTION_NAMES = {
    Faction.PLAYER: "Player",
    Faction.HOSTILE: "Hostile",
}

TURN_PHASE_NAMES = {
    TurnPhase.PLAYER_PHASE: "Player Phase",
    TurnPhase.HOSTILE_PHASE: "Hostile Phase",
}
