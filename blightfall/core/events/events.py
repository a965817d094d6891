"""Simulation events exposed to presentation and other observers.

Event Design Principles:
- Events are immutable dataclasses
- All events include the timeline_time (ms) at which they happened
- Units are referenced by their stable integer id, never by object identity
- Events use proper enums instead of magic strings
"""

from abc import ABC
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

from ..data import Faction, PathStep, TurnPhase, Vector2


class EventType(Enum):
    """Types of simulation events that observers can subscribe to."""
    # Selection and preview
    UNIT_SELECTED = auto()
    SELECTION_REJECTED = auto()
    SELECTION_CLEARED = auto()

    # Movement
    PATH_COMMITTED = auto()
    COMMIT_REJECTED = auto()
    UNIT_MOVED = auto()
    MOVEMENT_COMPLETED = auto()

    # Combat and corruption
    ATTACK_RESOLVED = auto()
    UNIT_DIED = auto()
    SPAWN_SCHEDULED = auto()
    UNIT_SPAWNED = auto()
    SPAWN_CANCELED = auto()

    # World state
    VISIBILITY_UPDATED = auto()
    TURN_ENDED = auto()
    TURN_STARTED = auto()

    # Logging
    LOG_MESSAGE = auto()


@dataclass(frozen=True)
class GameEvent(ABC):
    """Base class for all simulation events."""
    timeline_time: int
    event_type: EventType = field(init=False)


@dataclass(frozen=True)
class UnitSelected(GameEvent):
    """Event emitted when a unit becomes the active selection."""
    unit_id: int
    reachable_tiles: int

    def __post_init__(self):
        # Set event_type since dataclass frozen=True prevents normal assignment
        object.__setattr__(self, 'event_type', EventType.UNIT_SELECTED)


@dataclass(frozen=True)
class SelectionRejected(GameEvent):
    """Diagnostic event for a selection request that was ignored."""
    reason: str
    unit_id: Optional[int] = None
    position: Optional[Vector2] = None

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.SELECTION_REJECTED)


@dataclass(frozen=True)
class SelectionCleared(GameEvent):
    """Event emitted when the selection and its path preview are dropped."""
    unit_id: int

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.SELECTION_CLEARED)


@dataclass(frozen=True)
class PathCommitted(GameEvent):
    """Event emitted when a previewed path starts playing."""
    unit_id: int
    steps: tuple[PathStep, ...]
    ap_cost: float
    attack_target: Optional[Vector2] = None

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.PATH_COMMITTED)


@dataclass(frozen=True)
class CommitRejected(GameEvent):
    """Diagnostic event for a commit that was refused before animating."""
    unit_id: Optional[int]
    reason: str

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.COMMIT_REJECTED)


@dataclass(frozen=True)
class UnitMoved(GameEvent):
    """Event emitted after each completed movement step."""
    unit_id: int
    from_position: Vector2
    to_position: Vector2
    is_diagonal: bool

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.UNIT_MOVED)


@dataclass(frozen=True)
class MovementCompleted(GameEvent):
    """Event emitted once a whole animated move has finished."""
    unit_id: int
    final_position: Vector2
    steps_taken: int
    ap_spent: float

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.MOVEMENT_COMPLETED)


@dataclass(frozen=True)
class AttackResolved(GameEvent):
    """Event emitted after a melee attack has been applied."""
    attacker_id: int
    target_id: int
    damage: int
    target_hp: int
    target_killed: bool

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.ATTACK_RESOLVED)


@dataclass(frozen=True)
class UnitDied(GameEvent):
    """Event emitted when a unit is killed and its tile corrupted."""
    unit_id: int
    faction: Faction
    position: Vector2

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.UNIT_DIED)


@dataclass(frozen=True)
class SpawnScheduled(GameEvent):
    """Telegraph: a hostile unit will rise on a corrupted tile."""
    position: Vector2
    source_unit_id: int
    spawn_time: int

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.SPAWN_SCHEDULED)


@dataclass(frozen=True)
class UnitSpawned(GameEvent):
    """Event emitted when a unit is added to the roster mid-session."""
    unit_id: int
    faction: Faction
    position: Vector2
    source_unit_id: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.UNIT_SPAWNED)


@dataclass(frozen=True)
class SpawnCanceled(GameEvent):
    """Event emitted when a telegraphed spawn is discarded."""
    position: Vector2
    source_unit_id: int
    reason: str

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.SPAWN_CANCELED)


@dataclass(frozen=True)
class VisibilityUpdated(GameEvent):
    """Event emitted after the visibility map has been recomputed."""
    visible_count: int
    explored_count: int

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.VISIBILITY_UPDATED)


@dataclass(frozen=True)
class TurnEnded(GameEvent):
    """Event emitted when a phase ends."""
    turn: int
    phase: TurnPhase

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.TURN_ENDED)


@dataclass(frozen=True)
class TurnStarted(GameEvent):
    """Event emitted when a new phase begins."""
    turn: int
    phase: TurnPhase

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.TURN_STARTED)


@dataclass(frozen=True)
class LogMessage(GameEvent):
    """Event for logging messages through the event system."""
    message: str
    category: str = "SYSTEM"
    level: str = "INFO"
    source: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'event_type', EventType.LOG_MESSAGE)
