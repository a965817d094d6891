"""Deferred tasks with an explicit completion signal.

A MovementTask plays a committed path one timed step at a time through the
Timeline. Observers register completion callbacks instead of polling a busy
flag; TaskGroup joins any number of outstanding tasks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Optional

from ..data import PathStep

if TYPE_CHECKING:
    from .timeline import Timeline, TimelineEntry


class MovementTask:
    """An animated multi-step move that always runs to completion once started.

    The task itself only sequences time. What a step *does* is supplied by the
    owner through ``on_step``, which returns False to halt the move early
    (for example when the next tile became blocked mid-animation).
    """

    def __init__(
        self,
        unit_id: int,
        steps: list[PathStep],
        timeline: "Timeline",
        step_duration: Callable[[PathStep], int],
        on_step: Callable[[PathStep], bool],
    ):
        self.unit_id = unit_id
        self.steps = list(steps)
        self._timeline = timeline
        self._step_duration = step_duration
        self._on_step = on_step

        self.completed_steps: list[PathStep] = []
        self.halted = False
        self._started = False
        self._done = False
        self._callbacks: list[Callable[["MovementTask"], None]] = []
        self._pending_entry: Optional["TimelineEntry"] = None

    @property
    def done(self) -> bool:
        return self._done

    @property
    def started(self) -> bool:
        return self._started

    def add_done_callback(self, callback: Callable[["MovementTask"], None]) -> None:
        """Run callback when the task finishes (immediately if it already has)."""
        if self._done:
            callback(self)
        else:
            self._callbacks.append(callback)

    def start(self) -> None:
        """Begin playing the steps. A task can only be started once."""
        if self._started:
            raise RuntimeError(f"Movement task for unit {self.unit_id} already started")
        self._started = True
        self._schedule_next()

    def _schedule_next(self) -> None:
        index = len(self.completed_steps)
        if self.halted or index >= len(self.steps):
            # Defer completion to the timeline so a zero-step task still
            # completes asynchronously, after start() has returned.
            self._pending_entry = self._timeline.schedule(
                0, self._finish, f"unit:{self.unit_id}", "movement", "movement complete"
            )
            return

        step = self.steps[index]
        self._pending_entry = self._timeline.schedule(
            self._step_duration(step),
            lambda: self._complete_step(step),
            f"unit:{self.unit_id}",
            "movement",
            f"step to ({step.x}, {step.y})",
        )

    def _complete_step(self, step: PathStep) -> None:
        if self._on_step(step):
            self.completed_steps.append(step)
        else:
            self.halted = True
        self._schedule_next()

    def _finish(self) -> None:
        self._pending_entry = None
        self._done = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback(self)


class TaskGroup:
    """Tracks outstanding movement tasks and joins on them."""

    def __init__(self):
        self._tasks: dict[int, MovementTask] = {}
        self._idle_waiters: list[Callable[[], None]] = []

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, unit_id: int) -> bool:
        return unit_id in self._tasks

    @property
    def unit_ids(self) -> frozenset[int]:
        return frozenset(self._tasks)

    def add(self, task: MovementTask) -> None:
        """Track a task until it completes."""
        assert task.unit_id not in self._tasks, (
            f"Unit {task.unit_id} already has a movement in flight"
        )
        self._tasks[task.unit_id] = task
        task.add_done_callback(self._on_task_done)

    def when_idle(self, callback: Callable[[], None]) -> None:
        """Run callback once no task is outstanding (immediately if none is)."""
        if not self._tasks:
            callback()
        else:
            self._idle_waiters.append(callback)

    def clear(self) -> None:
        self._tasks.clear()
        self._idle_waiters.clear()

    def _on_task_done(self, task: MovementTask) -> None:
        self._tasks.pop(task.unit_id, None)
        # Waiters may start new tasks; only release them when still idle
        while not self._tasks and self._idle_waiters:
            self._idle_waiters.pop(0)()
