"""Timeline scheduling for deferred simulation work.

The simulation is single-threaded and frame driven. Anything that takes time
(an animated movement step, the telegraphed rise of a corrupted tile) is put
on the timeline as an entry with an absolute execution time in milliseconds.
The host advances the timeline every frame; due entries run in chronological
order.

Core Concepts:
- Timeline uses integer milliseconds for deterministic scheduling
- Entries carry the callback to run, so completion is pushed, not polled
- Entries scheduled for the same time run in scheduling order (sequence ids)
- Removal is lazy: cancelled entries stay in the heap and are skipped
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass, field
from typing import Callable, Optional


@dataclass
class TimelineEntry:
    """A scheduled piece of work on the timeline."""

    # When this entry should be processed (ms)
    execution_time: int

    # The entity that owns the entry ("unit:3", "spawn:4,7", ...)
    entity_id: str
    entity_type: str = "event"

    # Unique ID for stable sorting when times are equal
    sequence_id: int = 0

    callback: Optional[Callable[[], None]] = field(default=None, compare=False, repr=False)
    action_description: str = ""

    def __lt__(self, other: "TimelineEntry") -> bool:
        """Earlier execution_time first, then scheduling order."""
        if self.execution_time != other.execution_time:
            return self.execution_time < other.execution_time
        return self.sequence_id < other.sequence_id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TimelineEntry):
            return NotImplemented
        return (self.execution_time == other.execution_time and
                self.sequence_id == other.sequence_id)

    def __hash__(self) -> int:
        return hash((self.execution_time, self.sequence_id))


class Timeline:
    """Min-heap of scheduled entries driven by explicit time advancement."""

    def __init__(self):
        self._queue: list[TimelineEntry] = []
        self._current_time: int = 0
        self._sequence_counter: int = 0
        self._removed_entries: set[int] = set()

    @property
    def current_time(self) -> int:
        """Get the current timeline time in ms."""
        return self._current_time

    @property
    def is_empty(self) -> bool:
        """Check if the timeline has any pending entries."""
        return not any(entry.sequence_id not in self._removed_entries
                       for entry in self._queue)

    def __len__(self) -> int:
        return sum(1 for entry in self._queue if entry.sequence_id not in self._removed_entries)

    def schedule(
        self,
        delay_ms: int,
        callback: Callable[[], None],
        entity_id: str,
        entity_type: str = "event",
        action_description: str = "",
    ) -> TimelineEntry:
        """Schedule a callback to run delay_ms after the current time.

        Returns:
            The created timeline entry, usable with cancel()
        """
        if delay_ms < 0:
            raise ValueError(f"Cannot schedule in the past (delay {delay_ms} ms)")

        entry = TimelineEntry(
            execution_time=self._current_time + int(delay_ms),
            entity_id=entity_id,
            entity_type=entity_type,
            sequence_id=self._get_next_sequence_id(),
            callback=callback,
            action_description=action_description,
        )
        heapq.heappush(self._queue, entry)
        return entry

    def cancel(self, entry: TimelineEntry) -> bool:
        """Cancel a single entry. Returns False if it already ran or was cancelled."""
        if entry.sequence_id in self._removed_entries:
            return False
        if not any(queued.sequence_id == entry.sequence_id for queued in self._queue):
            return False
        self._removed_entries.add(entry.sequence_id)
        return True

    def peek_next(self) -> Optional[TimelineEntry]:
        """Get the next timeline entry without removing it."""
        while self._queue:
            entry = self._queue[0]
            if entry.sequence_id in self._removed_entries:
                heapq.heappop(self._queue)
                self._removed_entries.discard(entry.sequence_id)
                continue
            return entry
        return None

    def pop_next(self) -> Optional[TimelineEntry]:
        """Remove and return the next entry, moving current_time to it."""
        while self._queue:
            entry = heapq.heappop(self._queue)
            if entry.sequence_id in self._removed_entries:
                self._removed_entries.discard(entry.sequence_id)
                continue

            self._current_time = max(self._current_time, entry.execution_time)
            return entry

        return None

    def advance(self, ticks: int) -> int:
        """Advance time by ticks ms, running every entry that falls due.

        Entries scheduled by callbacks during the advance also run if they
        fall inside the window.

        Returns:
            Number of entries executed
        """
        if ticks < 0:
            raise ValueError(f"Cannot advance by a negative amount ({ticks} ms)")

        target_time = self._current_time + ticks
        executed = 0

        while True:
            entry = self.peek_next()
            if entry is None or entry.execution_time > target_time:
                break
            self.pop_next()
            executed += 1
            if entry.callback is not None:
                entry.callback()

        self._current_time = target_time
        return executed

    def run_until_idle(self, max_time_ms: int = 600_000) -> int:
        """Run entries until the queue is empty or max_time_ms of timeline time passed.

        Returns:
            Number of entries executed
        """
        deadline = self._current_time + max_time_ms
        executed = 0

        while True:
            entry = self.peek_next()
            if entry is None or entry.execution_time > deadline:
                break
            self.pop_next()
            executed += 1
            if entry.callback is not None:
                entry.callback()

        return executed

    def clear(self) -> None:
        """Clear all entries from the timeline and rewind to zero."""
        self._queue.clear()
        self._removed_entries.clear()
        self._current_time = 0
        self._sequence_counter = 0

    def _get_next_sequence_id(self) -> int:
        self._sequence_counter += 1
        return self._sequence_counter

