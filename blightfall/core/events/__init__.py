"""Event system for publisher-subscriber communication.

- event_manager.py: Publisher-subscriber event routing
- events.py: Event definitions exposed to observers
"""

from .event_manager import EventManager, EventPriority, QueuedEvent
from .events import (
    GameEvent,
    EventType,
    UnitSelected,
    SelectionRejected,
    SelectionCleared,
    PathCommitted,
    CommitRejected,
    UnitMoved,
    MovementCompleted,
    AttackResolved,
    UnitDied,
    SpawnScheduled,
    UnitSpawned,
    SpawnCanceled,
    VisibilityUpdated,
    TurnEnded,
    TurnStarted,
    LogMessage,
)

__all__ = [
    "EventManager",
    "EventPriority",
    "QueuedEvent",
    "GameEvent",
    "EventType",
    "UnitSelected",
    "SelectionRejected",
    "SelectionCleared",
    "PathCommitted",
    "CommitRejected",
    "UnitMoved",
    "MovementCompleted",
    "AttackResolved",
    "UnitDied",
    "SpawnScheduled",
    "UnitSpawned",
    "SpawnCanceled",
    "VisibilityUpdated",
    "TurnEnded",
    "TurnStarted",
    "LogMessage",
]
