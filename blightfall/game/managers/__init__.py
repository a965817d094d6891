"""Session managers: turn sequencing, combat and logging."""

from .combat_manager import CombatManager, PendingSpawn
from .log_manager import LogCategory, LogEntry, LogLevel, LogManager
from .turn_controller import TurnController

__all__ = [
    "CombatManager",
    "PendingSpawn",
    "LogCategory",
    "LogEntry",
    "LogLevel",
    "LogManager",
    "TurnController",
]
