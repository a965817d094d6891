"""
Event management system for decoupled communication.

This module provides a central event bus that lets the simulation core publish
what happened without knowing who listens, following the publisher-subscriber
pattern. The core is single-threaded, so the bus takes no locks.
"""

from collections import defaultdict, deque
from dataclasses import dataclass, field
from enum import Enum
from itertools import count
from typing import Any, Callable, Optional

from .events import EventType, GameEvent


class EventPriority(Enum):
    """Event processing priorities (lower value is processed first)."""
    CRITICAL = 0
    HIGH = 1
    NORMAL = 2
    LOW = 3


_sequence = count()


@dataclass
class QueuedEvent:
    """An event in the processing queue with metadata."""
    event: GameEvent
    priority: EventPriority = EventPriority.NORMAL
    source: Optional[str] = None  # For debugging
    sequence: int = field(default_factory=lambda: next(_sequence))

    def __lt__(self, other: "QueuedEvent") -> bool:
        """Compare events for priority queue ordering."""
        if self.priority.value != other.priority.value:
            return self.priority.value < other.priority.value
        # If same priority, older events come first
        return self.sequence < other.sequence


EventSubscriber = Callable[[GameEvent], None]


class EventManager:
    """Central event bus for simulation observers."""

    def __init__(self, enable_debug_logging: bool = False, history_size: int = 1000):
        """Initialize the event manager.

        Args:
            enable_debug_logging: Whether to report bus activity to the debug callback
            history_size: Number of processed events kept for inspection
        """
        self.enable_debug_logging = enable_debug_logging

        self._subscribers: dict[EventType, list[EventSubscriber]] = defaultdict(list)
        self._universal_subscribers: list[EventSubscriber] = []

        self._event_queue: deque[QueuedEvent] = deque()

        # Statistics and debugging
        self._events_published = 0
        self._events_processed = 0
        self._event_history: deque[QueuedEvent] = deque(maxlen=history_size)

        self._debug_callback: Optional[Callable[[str], None]] = None
        # Receives (subscriber name, exception) when a subscriber fails
        self._error_callback: Optional[Callable[[str, Exception], None]] = None

    def set_debug_callback(self, callback: Optional[Callable[[str], None]]) -> None:
        """Set a callback function for debug logging."""
        self._debug_callback = callback

    def set_error_callback(self, callback: Optional[Callable[[str, Exception], None]]) -> None:
        """Set a callback notified when a subscriber raises."""
        self._error_callback = callback

    def _debug_log(self, message: str) -> None:
        if self.enable_debug_logging and self._debug_callback:
            self._debug_callback(f"[EVENT] {message}")

    def subscribe(
        self,
        event_type: EventType,
        subscriber: EventSubscriber,
        subscriber_name: Optional[str] = None
    ) -> None:
        """Subscribe to events of a specific type.

        Args:
            event_type: The type of events to subscribe to
            subscriber: Callback function to handle events
            subscriber_name: Optional name for debugging
        """
        self._subscribers[event_type].append(subscriber)

        subscriber_display = subscriber_name or getattr(subscriber, '__name__', 'anonymous')
        self._debug_log(f"Subscribed {subscriber_display} to {event_type.name} events")

    def subscribe_all(
        self,
        subscriber: EventSubscriber,
        subscriber_name: Optional[str] = None
    ) -> None:
        """Subscribe to all events (universal subscriber)."""
        self._universal_subscribers.append(subscriber)

        subscriber_display = subscriber_name or getattr(subscriber, '__name__', 'anonymous')
        self._debug_log(f"Subscribed {subscriber_display} to ALL events")

    def unsubscribe(self, event_type: EventType, subscriber: EventSubscriber) -> bool:
        """Unsubscribe from events of a specific type.

        Returns:
            True if subscriber was found and removed
        """
        try:
            self._subscribers[event_type].remove(subscriber)
            self._debug_log(f"Unsubscribed from {event_type.name} events")
            return True
        except ValueError:
            return False

    def unsubscribe_all(self, subscriber: EventSubscriber) -> bool:
        """Unsubscribe a universal subscriber."""
        try:
            self._universal_subscribers.remove(subscriber)
            return True
        except ValueError:
            return False

    def publish(
        self,
        event: GameEvent,
        priority: EventPriority = EventPriority.NORMAL,
        source: Optional[str] = None
    ) -> None:
        """Queue an event; it is delivered by the next process_events() call."""
        queued_event = QueuedEvent(event=event, priority=priority, source=source or "unknown")

        self._event_queue.append(queued_event)
        self._events_published += 1

        self._debug_log(
            f"Published {event.__class__.__name__} (priority: {priority.name}, source: {queued_event.source})"
        )

    def publish_immediate(self, event: GameEvent, source: Optional[str] = None) -> None:
        """Publish and immediately deliver an event."""
        queued_event = QueuedEvent(
            event=event,
            priority=EventPriority.CRITICAL,
            source=source or "immediate"
        )
        self._events_published += 1
        self._process_event(queued_event)

    def process_events(self, max_events: Optional[int] = None) -> int:
        """Process queued events in priority order.

        Args:
            max_events: Maximum number of events to process (None for all)

        Returns:
            Number of events processed
        """
        sorted_events = sorted(self._event_queue)
        self._event_queue.clear()

        processed_count = 0
        for queued_event in sorted_events:
            if max_events is not None and processed_count >= max_events:
                # Put remaining events back in queue
                self._event_queue.extendleft(reversed(sorted_events[processed_count:]))
                break

            self._process_event(queued_event)
            processed_count += 1

        return processed_count

    def _process_event(self, queued_event: QueuedEvent) -> None:
        """Deliver a single event to every matching subscriber."""
        event = queued_event.event

        self._event_history.append(queued_event)
        self._events_processed += 1

        self._debug_log(
            f"Processing {event.__class__.__name__} from {queued_event.source} "
            f"(t={event.timeline_time})"
        )

        subscribers = self._subscribers.get(event.event_type, [])
        # Copy so subscribers may unsubscribe while being notified
        for subscriber in subscribers[:] + self._universal_subscribers[:]:
            try:
                subscriber(event)
            except Exception as e:
                name = getattr(subscriber, '__name__', 'anonymous')
                self._debug_log(f"Error in subscriber {name}: {e}")
                if self._error_callback:
                    self._error_callback(name, e)

    def clear_queue(self) -> int:
        """Clear all queued events and return how many were dropped."""
        count_cleared = len(self._event_queue)
        self._event_queue.clear()
        return count_cleared

    def get_statistics(self) -> dict[str, Any]:
        """Get event processing statistics."""
        return {
            'events_published': self._events_published,
            'events_processed': self._events_processed,
            'events_queued': len(self._event_queue),
            'subscribers_count': sum(len(subs) for subs in self._subscribers.values()),
            'universal_subscribers_count': len(self._universal_subscribers),
            'event_history_size': len(self._event_history)
        }

    def get_recent_events(self, count: int = 10) -> list[GameEvent]:
        """Get the most recently processed events, oldest first."""
        recent = list(self._event_history)[-count:] if count > 0 else []
        return [queued.event for queued in recent]

    def has_queued_events(self) -> bool:
        """Check if there are events waiting to be processed."""
        return len(self._event_queue) > 0

    def shutdown(self) -> None:
        """Drop all subscribers, queued events and history."""
        self._subscribers.clear()
        self._universal_subscribers.clear()
        self._event_queue.clear()
        self._event_history.clear()
