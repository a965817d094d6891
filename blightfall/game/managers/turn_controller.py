"""
Turn controller: the session-owning state machine.

The controller owns the grid, the scheduler, the outstanding movement tasks,
the visibility map and the current selection. It alternates between the
player phase (selection, path preview, animated commits) and the hostile
phase (one greedy action per hostile unit), and every phase change waits on
outstanding movement tasks instead of polling busy flags.

Typical host loop:
    controller = TurnController(world)
    controller.setup(units)
    controller.select_at(Vector2(1, 1))
    controller.extend_path(Vector2(1, 2))
    controller.commit_path()
    while running:
        controller.update(frame_ms)
"""
from typing import Callable, Iterable, Optional

from ...core.config import RulesConfig
from ...core.data import Faction, PathStep, TurnPhase, TURN_PHASE_NAMES, Vector2
from ...core.engine import MovementTask, TaskGroup, Timeline
from ...core.events import (
    CommitRejected,
    EventManager,
    LogMessage,
    MovementCompleted,
    PathCommitted,
    SelectionCleared,
    SelectionRejected,
    TurnEnded,
    TurnStarted,
    UnitMoved,
    UnitSelected,
    VisibilityUpdated,
)
from ..ai import AIAction, AIBehavior, GreedyMeleeAI
from ..entities.unit import Unit
from ..map import GridWorld
from ..movement import CommittedPath, MovementRange, PathBuilder, RangeCalculator
from ..movement.range_calculator import is_diagonal_offset
from ..visibility import VisibilityMap
from .combat_manager import CombatManager, PendingSpawn

# Tolerance for "out of AP" comparisons on half-AP values
AP_EPSILON = 1e-9


class TurnController:
    """Owns one simulation session and sequences every rule in it."""

    def __init__(
        self,
        world: GridWorld,
        rules: Optional[RulesConfig] = None,
        event_manager: Optional[EventManager] = None,
        ai: Optional[AIBehavior] = None,
    ):
        self.world = world
        self.rules = rules or RulesConfig()
        self.event_manager = event_manager or EventManager()
        self.ai = ai or GreedyMeleeAI()

        self.timeline = Timeline()
        self.tasks = TaskGroup()
        self.visibility = VisibilityMap(world.width, world.height)
        self.range_calculator = RangeCalculator(world, self.rules)
        self.combat = CombatManager(
            world,
            self.timeline,
            self.event_manager,
            self.rules,
            on_roster_changed=self.refresh_visibility,
        )

        self._phase = TurnPhase.PLAYER_PHASE
        self._turn = 1
        self._selected_unit_id: Optional[int] = None
        self._movement_range: Optional[MovementRange] = None
        self._path_builder: Optional[PathBuilder] = None
        self._phase_end_pending = False
        self._hostile_queue: list[int] = []

    # ============== Lifecycle ==============

    def setup(self, units: Iterable[Unit] = ()) -> None:
        """Start a fresh session with the given roster in the player phase.

        Raises:
            ValueError: If a unit cannot be placed on the grid
        """
        self.reset()
        for unit in units:
            if self.world.get_unit(unit.unit_id) is unit:
                continue
            if not self.world.add_unit(unit):
                raise ValueError(f"Cannot place {unit.name} at {unit.position}")
        self.world.check_integrity()

        self._emit_log(f"Session started with {len(self.world)} units", "SYSTEM")
        self.refresh_visibility()
        self.event_manager.publish_immediate(
            TurnStarted(timeline_time=self._now(), turn=self._turn, phase=self._phase),
            source="TurnController",
        )

    def reset(self) -> None:
        """Drop all session state derived from the roster.

        Pending spawns are cancelled, in-flight moves are discarded and the
        fog of war is forgotten. The grid and its roster are kept.
        """
        self.combat.cancel_pending_spawns("session reset")
        self.timeline.clear()
        self.tasks.clear()
        self.visibility.reset()
        for unit in self.world.units:
            unit.busy = False

        self._selected_unit_id = None
        self._movement_range = None
        self._path_builder = None
        self._phase = TurnPhase.PLAYER_PHASE
        self._turn = 1
        self._phase_end_pending = False
        self._hostile_queue = []

    # ============== Read-only state ==============

    @property
    def phase(self) -> TurnPhase:
        return self._phase

    @property
    def turn(self) -> int:
        return self._turn

    @property
    def selected_unit(self) -> Optional[Unit]:
        if self._selected_unit_id is None:
            return None
        return self.world.get_unit(self._selected_unit_id)

    @property
    def movement_range(self) -> Optional[MovementRange]:
        """Reachable set of the selected unit, or None without a selection."""
        return self._movement_range

    @property
    def path_preview(self) -> list[PathStep]:
        return self._path_builder.steps if self._path_builder else []

    @property
    def attack_target(self) -> Optional[Vector2]:
        return self._path_builder.attack_target if self._path_builder else None

    @property
    def busy_units(self) -> frozenset[int]:
        """Ids of units with a movement in flight."""
        return self.tasks.unit_ids

    @property
    def pending_spawns(self) -> list[PendingSpawn]:
        return self.combat.pending_spawns

    def cancel_pending_spawns(self) -> int:
        return self.combat.cancel_pending_spawns()

    # ============== Scheduling bridge ==============

    def update(self, delta_ms: int) -> int:
        """Advance simulation time; call once per host frame."""
        return self.timeline.advance(delta_ms)

    def run_until_idle(self, max_time_ms: int = 600_000) -> int:
        """Play every scheduled entry (moves, spawns) to completion."""
        return self.timeline.run_until_idle(max_time_ms)

    def when_idle(self, callback: Callable[[], None]) -> None:
        """Run callback once no movement is in flight."""
        self.tasks.when_idle(callback)

    # ============== Selection ==============

    def select_unit(self, unit_id: int) -> bool:
        """Select a living, idle player unit with AP left and compute its range."""
        if self._phase is not TurnPhase.PLAYER_PHASE:
            return self._reject_selection("not the player phase", unit_id=unit_id)
        if self._phase_end_pending:
            return self._reject_selection("turn is ending", unit_id=unit_id)

        unit = self.world.get_unit(unit_id)
        if unit is None or not unit.alive:
            return self._reject_selection("unit is dead or missing", unit_id=unit_id)
        if not unit.is_player:
            return self._reject_selection("unit is not player controlled", unit_id=unit_id)
        if unit.busy:
            return self._reject_selection("unit is moving", unit_id=unit_id)
        if unit.action_points <= AP_EPSILON:
            return self._reject_selection("unit has no action points", unit_id=unit_id)

        if self._selected_unit_id is not None:
            self.deselect()

        self._selected_unit_id = unit_id
        self._movement_range = self.range_calculator.calculate(unit)
        self._path_builder = PathBuilder(self.world, unit, self.rules)

        self.event_manager.publish_immediate(
            UnitSelected(
                timeline_time=self._now(),
                unit_id=unit_id,
                reachable_tiles=len(self._movement_range),
            ),
            source="TurnController",
        )
        self._emit_log(
            f"{unit.name} selected ({unit.action_points:g} AP, "
            f"{len(self._movement_range)} tiles reachable)",
            "SELECTION",
        )
        return True

    def select_at(self, position: Vector2) -> bool:
        """Select whatever unit stands on a tile."""
        if not self.world.in_bounds(position):
            return self._reject_selection("position out of bounds", position=position)

        unit = self.world.get_unit_at(position)
        if unit is None:
            return self._reject_selection("no unit at position", position=position)
        return self.select_unit(unit.unit_id)

    def deselect(self) -> None:
        """Drop the selection and its preview. No simulation state changes."""
        unit_id = self._selected_unit_id
        self._selected_unit_id = None
        self._movement_range = None
        self._path_builder = None
        if unit_id is not None:
            self.event_manager.publish_immediate(
                SelectionCleared(timeline_time=self._now(), unit_id=unit_id),
                source="TurnController",
            )

    def _reject_selection(
        self,
        reason: str,
        unit_id: Optional[int] = None,
        position: Optional[Vector2] = None,
    ) -> bool:
        self.event_manager.publish_immediate(
            SelectionRejected(
                timeline_time=self._now(), reason=reason, unit_id=unit_id, position=position
            ),
            source="TurnController",
        )
        target = f"unit {unit_id}" if unit_id is not None else f"tile {position}"
        self._emit_log(f"Selection of {target} ignored: {reason}", "WARNING", "WARNING")
        return False

    # ============== Path preview ==============

    def extend_path(self, position: Vector2) -> bool:
        """Feed the tile under the pointer into the selected unit's preview."""
        unit = self.selected_unit
        if self._path_builder is None or unit is None or unit.busy:
            return False
        if self._phase_end_pending:
            return False
        return self._path_builder.try_extend(position)

    def clear_path(self) -> None:
        if self._path_builder is not None:
            self._path_builder.clear()

    def commit_path(self) -> Optional[MovementTask]:
        """Start playing the previewed path.

        Returns the movement task, or None if the commit was rejected before
        any animation started.
        """
        if self._phase is not TurnPhase.PLAYER_PHASE:
            return self._reject_commit(self._selected_unit_id, "not the player phase")
        if self._phase_end_pending:
            return self._reject_commit(self._selected_unit_id, "turn is ending")

        unit = self.selected_unit
        if self._path_builder is None or unit is None:
            return self._reject_commit(None, "no unit selected")
        if unit.busy:
            return self._reject_commit(unit.unit_id, "unit is already moving")

        committed = self._path_builder.commit()
        if committed is None:
            return self._reject_commit(unit.unit_id, "empty path or insufficient action points")

        return self._start_move(unit, committed, charge_ap=True)

    def _reject_commit(self, unit_id: Optional[int], reason: str) -> None:
        self.event_manager.publish_immediate(
            CommitRejected(timeline_time=self._now(), unit_id=unit_id, reason=reason),
            source="TurnController",
        )
        self._emit_log(f"Commit rejected: {reason}", "WARNING", "WARNING")
        return None

    # ============== Movement ==============

    def _start_move(self, unit: Unit, committed: CommittedPath, charge_ap: bool) -> MovementTask:
        unit.busy = True
        self.event_manager.publish_immediate(
            PathCommitted(
                timeline_time=self._now(),
                unit_id=unit.unit_id,
                steps=committed.steps,
                ap_cost=committed.ap_cost if charge_ap else 0.0,
                attack_target=committed.attack_target,
            ),
            source="TurnController",
        )

        task = MovementTask(
            unit.unit_id,
            list(committed.steps),
            self.timeline,
            self._step_duration,
            lambda step: self._play_step(unit, step),
        )
        # Finalization must run before the task group releases idle waiters
        task.add_done_callback(lambda done: self._finish_move(unit, committed, done, charge_ap))
        self.tasks.add(task)
        task.start()
        return task

    def _step_duration(self, step: PathStep) -> int:
        if step.is_diagonal:
            return self.rules.diagonal_step_ms
        return self.rules.orthogonal_step_ms

    def _play_step(self, unit: Unit, step: PathStep) -> bool:
        if not unit.alive:
            return False

        origin = unit.position
        if not self.world.move_unit(unit.unit_id, step.position):
            self._emit_log(
                f"{unit.name} halted at ({origin.x}, {origin.y}): "
                f"({step.x}, {step.y}) is blocked",
                "MOVEMENT",
                "WARNING",
            )
            return False

        self.event_manager.publish_immediate(
            UnitMoved(
                timeline_time=self._now(),
                unit_id=unit.unit_id,
                from_position=origin,
                to_position=step.position,
                is_diagonal=is_diagonal_offset(origin, step.position),
            ),
            source="TurnController",
        )
        self.refresh_visibility()
        return True

    def _finish_move(
        self, unit: Unit, committed: CommittedPath, task: MovementTask, charge_ap: bool
    ) -> None:
        """Everything that must wait until the whole path has played."""
        mp_spent = sum(self.range_calculator.step_cost(step.is_diagonal) for step in task.completed_steps)
        ap_cost = self.rules.ap_cost_for(mp_spent)

        if committed.attack_target is not None and not task.halted and unit.alive:
            target = self.world.get_unit_at(committed.attack_target)
            if (target is not None and target.is_opponent_of(unit)
                    and unit.position.is_adjacent_to(target.position)):
                ap_cost += self.rules.melee_ap_cost
                self.combat.resolve_melee(unit, target)

        spent = unit.spend_action_points(ap_cost) if charge_ap else 0.0
        unit.busy = False
        self.refresh_visibility()

        if self._selected_unit_id == unit.unit_id:
            self.deselect()

        self.event_manager.publish_immediate(
            MovementCompleted(
                timeline_time=self._now(),
                unit_id=unit.unit_id,
                final_position=unit.position,
                steps_taken=len(task.completed_steps),
                ap_spent=spent,
            ),
            source="TurnController",
        )
        self._emit_log(
            f"{unit.name} moved {len(task.completed_steps)} tiles to "
            f"({unit.position.x}, {unit.position.y}), spent {spent:g} AP",
            "MOVEMENT",
        )

        if self._phase is TurnPhase.PLAYER_PHASE and unit.is_player:
            self._check_player_exhausted()

    # ============== Visibility ==============

    def refresh_visibility(self) -> None:
        """Recompute fog of war from every living observer unit."""
        observers = [
            unit for unit in self.world.units
            if unit.alive and unit.faction in self.rules.observer_factions
        ]
        self.visibility.recompute(observers)
        self.event_manager.publish_immediate(
            VisibilityUpdated(
                timeline_time=self._now(),
                visible_count=self.visibility.visible_count,
                explored_count=self.visibility.explored_count,
            ),
            source="TurnController",
        )

    # ============== Phase transitions ==============

    def end_turn(self) -> bool:
        """Request the end of the player phase.

        The transition happens once every in-flight movement has finished,
        which may be immediately.
        """
        if self._phase is not TurnPhase.PLAYER_PHASE:
            self._emit_log("End turn ignored outside the player phase", "WARNING", "WARNING")
            return False
        if self._phase_end_pending:
            return False

        self.deselect()
        self._request_phase_end()
        return True

    def _check_player_exhausted(self) -> None:
        players = self.world.units_of(Faction.PLAYER)
        if not players or self._phase_end_pending:
            return
        if all(unit.action_points <= AP_EPSILON for unit in players):
            self._emit_log("All player units are out of action points", "SYSTEM", "DEBUG")
            self._request_phase_end()

    def _request_phase_end(self) -> None:
        self._phase_end_pending = True
        if self.tasks:
            self._emit_log(f"Waiting on {len(self.tasks)} moving units", "TIMELINE", "DEBUG")
        self.tasks.when_idle(self._begin_hostile_phase)

    def _begin_hostile_phase(self) -> None:
        if not self._phase_end_pending or self._phase is not TurnPhase.PLAYER_PHASE:
            return
        self._phase_end_pending = False

        self._change_phase(TurnPhase.HOSTILE_PHASE)
        self._hostile_queue = [unit.unit_id for unit in self.world.units_of(Faction.HOSTILE)]
        self._advance_hostile_sweep()

    def _advance_hostile_sweep(self) -> None:
        """Act with each hostile in turn; a step waits for its animation."""
        if self._phase is not TurnPhase.HOSTILE_PHASE:
            return

        while self._hostile_queue:
            unit = self.world.get_unit(self._hostile_queue.pop(0))
            if unit is None or not unit.alive:
                continue
            if self._act_hostile(unit) is not None:
                self.tasks.when_idle(self._advance_hostile_sweep)
                return

        self.tasks.when_idle(self._end_hostile_phase)

    def _act_hostile(self, unit: Unit) -> Optional[MovementTask]:
        decision = self.ai.choose_action(unit, self.world)
        self._emit_log(f"{unit.name}: {decision.action.name.lower()} ({decision.reasoning})", "AI", "DEBUG")

        if decision.action is AIAction.ATTACK:
            target = self.world.get_unit(decision.target_unit_id)
            if target is not None and target.alive:
                self.combat.resolve_melee(unit, target)
            return None

        if decision.action is AIAction.STEP:
            step = PathStep(decision.target, is_diagonal_offset(unit.position, decision.target))
            committed = CommittedPath(
                unit_id=unit.unit_id,
                origin=unit.position,
                steps=(step,),
                mp_cost=self.range_calculator.step_cost(step.is_diagonal),
                ap_cost=0.0,
            )
            return self._start_move(unit, committed, charge_ap=False)

        return None

    def _end_hostile_phase(self) -> None:
        if self._phase is not TurnPhase.HOSTILE_PHASE:
            return

        self._turn += 1
        for unit in self.world.units_of(Faction.PLAYER):
            unit.reset_action_points(self.rules.ap_per_turn)
        self._change_phase(TurnPhase.PLAYER_PHASE)

    def _change_phase(self, new_phase: TurnPhase) -> None:
        old_phase = self._phase
        # The ending phase belongs to the previous turn number when wrapping around
        ended_turn = self._turn - 1 if new_phase is TurnPhase.PLAYER_PHASE else self._turn
        self.event_manager.publish_immediate(
            TurnEnded(timeline_time=self._now(), turn=ended_turn, phase=old_phase),
            source="TurnController",
        )

        self._phase = new_phase
        self.refresh_visibility()

        self.event_manager.publish_immediate(
            TurnStarted(timeline_time=self._now(), turn=self._turn, phase=new_phase),
            source="TurnController",
        )
        self._emit_log(f"Turn {self._turn}: {TURN_PHASE_NAMES[new_phase]}", "SYSTEM")

    # ============== Helpers ==============

    def _now(self) -> int:
        return self.timeline.current_time

    def _emit_log(self, message: str, category: str = "SYSTEM", level: str = "INFO") -> None:
        """Emit a log message event."""
        self.event_manager.publish_immediate(
            LogMessage(
                timeline_time=self._now(),
                message=message,
                category=category,
                level=level,
                source="TurnController",
            ),
            source="TurnController",
        )
