"""Scheduling engine: the timeline and the deferred tasks played on it."""

from .timeline import Timeline, TimelineEntry
from .tasks import MovementTask, TaskGroup

__all__ = ["Timeline", "TimelineEntry", "MovementTask", "TaskGroup"]
