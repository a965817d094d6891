"""Core data structures and definitions.

This package contains fundamental data types and game definitions:
- data_structures.py: Vector2 positions and PathStep entries
- game_enums.py: Centralized enums for factions, visibility and turn phases
"""

from .data_structures import (
    Vector2,
    PathStep,
    ORTHOGONAL_OFFSETS,
    DIAGONAL_OFFSETS,
    NEIGHBOR_OFFSETS,
)
from .game_enums import Faction, VisibilityState, TurnPhase, FACTION_NAMES, TURN_PHASE_NAMES

__all__ = [
    "Vector2",
    "PathStep",
    "ORTHOGONAL_OFFSETS",
    "DIAGONAL_OFFSETS",
    "NEIGHBOR_OFFSETS",
    "Faction",
    "VisibilityState",
    "TurnPhase",
    "FACTION_NAMES",
    "TURN_PHASE_NAMES",
]
