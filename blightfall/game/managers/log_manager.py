"""
Log management system for simulation messages and debugging.

This module provides centralized logging with categorization, filtering,
and bounded storage. Everything in the core logs by publishing LogMessage
events; the LogManager is the only subscriber that stores them.
"""
import os
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Optional, TYPE_CHECKING

from ...core.events import EventType, LogMessage as LogEvent

if TYPE_CHECKING:
    from ...core.events import EventManager, GameEvent


class LogCategory(Enum):
    """Categories for log messages."""
    SYSTEM = auto()      # Session setup, resets
    MOVEMENT = auto()    # Unit movement messages
    BATTLE = auto()      # Melee, deaths, spawns
    AI = auto()          # Hostile decisions
    TIMELINE = auto()    # Scheduler messages
    VISIBILITY = auto()  # Fog of war recomputation
    SELECTION = auto()   # Selection and path preview
    WARNING = auto()     # Warning messages
    ERROR = auto()       # Error messages
    DEBUG = auto()       # Debug messages


CATEGORY_TAGS = {
    LogCategory.SYSTEM: "SYS",
    LogCategory.MOVEMENT: "MOV",
    LogCategory.BATTLE: "BTL",
    LogCategory.AI: "AI",
    LogCategory.TIMELINE: "TML",
    LogCategory.VISIBILITY: "VIS",
    LogCategory.SELECTION: "SEL",
    LogCategory.WARNING: "WRN",
    LogCategory.ERROR: "ERR",
    LogCategory.DEBUG: "DBG",
}


class LogLevel(Enum):
    """Log levels for filtering."""
    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclass
class LogEntry:
    """A single stored log message with metadata."""
    text: str
    category: LogCategory
    level: LogLevel = LogLevel.INFO
    timeline_time: int = 0
    timestamp: datetime = field(default_factory=datetime.now)

    def format(self, include_timestamp: bool = False, include_category: bool = True) -> str:
        """Format the message for display."""
        parts = []

        if include_timestamp:
            parts.append(f"[{self.timestamp.strftime('%H:%M:%S')}]")

        if include_category:
            parts.append(f"[{CATEGORY_TAGS.get(self.category, '???')}]")

        parts.append(self.text)
        return " ".join(parts)


class LogManager:
    """Manages simulation logging with categorization and filtering."""

    def __init__(
        self,
        event_manager: "EventManager",
        max_messages: int = 1000,
        default_level: LogLevel = LogLevel.INFO,
    ):
        """Initialize the log manager.

        Args:
            event_manager: Event manager for event-driven logging (required)
            max_messages: Maximum number of messages to store in the buffer
            default_level: Default log level for filtering
        """
        self.messages: deque[LogEntry] = deque(maxlen=max_messages)
        self.log_level = default_level
        self.enabled_categories = set(LogCategory)
        self.event_manager = event_manager

        # Floor level per category; anything not listed is INFO
        self.category_levels = {
            LogCategory.DEBUG: LogLevel.DEBUG,
            LogCategory.AI: LogLevel.DEBUG,
            LogCategory.TIMELINE: LogLevel.DEBUG,
            LogCategory.VISIBILITY: LogLevel.DEBUG,
            LogCategory.WARNING: LogLevel.WARNING,
            LogCategory.ERROR: LogLevel.ERROR,
        }

        self.event_manager.subscribe(
            EventType.LOG_MESSAGE,
            self._handle_log_message_event,
            subscriber_name="LogManager.log_message",
        )
        self.event_manager.set_error_callback(self._handle_subscriber_error)

    def _handle_log_message_event(self, event: "GameEvent") -> None:
        """Handle log message events from the event system."""
        if not isinstance(event, LogEvent):
            return

        try:
            category = LogCategory[event.category.upper()]
        except (KeyError, AttributeError):
            category = LogCategory.SYSTEM
        try:
            level = LogLevel[event.level.upper()]
        except (KeyError, AttributeError):
            level = LogLevel.INFO

        text = f"[{event.source}] {event.message}" if event.source else event.message
        self.messages.append(
            LogEntry(text=text, category=category, level=level, timeline_time=event.timeline_time)
        )

    def _handle_subscriber_error(self, subscriber_name: str, error: Exception) -> None:
        # Stored directly: publishing from inside a failing delivery could recurse
        self.error(f"Subscriber {subscriber_name} failed: {error}")

    def log(
        self,
        text: str,
        category: LogCategory = LogCategory.SYSTEM,
        level: Optional[LogLevel] = None,
    ) -> None:
        """Add a message to the log.

        Args:
            text: The message text
            category: The category of the message
            level: Explicit level, defaults to the category's level
        """
        if level is None:
            level = self.category_levels.get(category, LogLevel.INFO)
        self.messages.append(LogEntry(text=text, category=category, level=level))

    # Convenience methods for common categories
    def system(self, text: str) -> None:
        self.log(text, LogCategory.SYSTEM)

    def movement(self, text: str) -> None:
        self.log(text, LogCategory.MOVEMENT)

    def battle(self, text: str) -> None:
        self.log(text, LogCategory.BATTLE)

    def ai(self, text: str) -> None:
        self.log(text, LogCategory.AI)

    def debug(self, text: str) -> None:
        self.log(text, LogCategory.DEBUG)

    def warning(self, text: str) -> None:
        self.log(text, LogCategory.WARNING)

    def error(self, text: str) -> None:
        self.log(text, LogCategory.ERROR)

    def get_messages(self, count: Optional[int] = None,
                     categories: Optional[set[LogCategory]] = None) -> list[LogEntry]:
        """Get recent messages, optionally filtered by category.

        Args:
            count: Maximum number of messages to return (None for all)
            categories: Set of categories to include (None for all enabled)

        Returns:
            List of recent messages, oldest first
        """
        if categories:
            filtered = [msg for msg in self.messages
                        if msg.category in categories and msg.category in self.enabled_categories]
        else:
            filtered = [
                msg for msg in self.messages
                if msg.category in self.enabled_categories
                and msg.level.value >= self.log_level.value
            ]

        if count is not None and count < len(filtered):
            return filtered[-count:]
        return filtered

    def clear(self) -> None:
        """Clear all messages from the log."""
        self.messages.clear()

    def enable_category(self, category: LogCategory) -> None:
        self.enabled_categories.add(category)

    def disable_category(self, category: LogCategory) -> None:
        self.enabled_categories.discard(category)

    def set_log_level(self, level: LogLevel) -> None:
        """Set the minimum log level."""
        self.log_level = level

    def is_debug_enabled(self) -> bool:
        """Check if debug messages are currently enabled."""
        return (LogCategory.DEBUG in self.enabled_categories and
                self.log_level == LogLevel.DEBUG)

    def toggle_debug(self) -> None:
        """Toggle debug message visibility."""
        if self.is_debug_enabled():
            self.disable_category(LogCategory.DEBUG)
            self.set_log_level(LogLevel.INFO)
        else:
            self.enable_category(LogCategory.DEBUG)
            self.set_log_level(LogLevel.DEBUG)

    def save_log_to_file(self, log_dir: str = "logs") -> Optional[str]:
        """Save all messages to a timestamped log file.

        Returns:
            Path of the written file, or None if the save failed
        """
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filepath = os.path.join(log_dir, f"log_{timestamp}.log")

        try:
            os.makedirs(log_dir, exist_ok=True)

            with open(filepath, "w", encoding="utf-8") as f:
                f.write("Blightfall - Simulation Log\n")
                f.write(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
                f.write("=" * 60 + "\n\n")

                if not self.messages:
                    f.write("No messages to save.\n")
                # Every buffered message, ignoring the current filters
                for msg in self.messages:
                    f.write(
                        f"[t={msg.timeline_time}ms] [{msg.category.name}] "
                        f"[{msg.level.name}] {msg.text}\n"
                    )
        except OSError as e:
            self.error(f"Failed to save log file: {e}")
            return None

        self.system(f"Simulation log saved to {filepath}")
        return filepath
