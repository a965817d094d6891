"""
Combat management: melee resolution, death, corruption and telegraphed spawns.

A death corrupts the fallen unit's tile (permanently unwalkable) and, after a
fixed delay on the timeline, raises a weaker hostile unit on it. The delay is
an ordinary timeline entry so it can be cancelled when the session resets.
"""
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from ...core.config import RulesConfig
from ...core.data import Faction, Vector2
from ...core.events import (
    AttackResolved,
    LogMessage,
    SpawnCanceled,
    SpawnScheduled,
    UnitDied,
    UnitSpawned,
)
from ..entities.unit_templates import create_unit

if TYPE_CHECKING:
    from ...core.engine import Timeline, TimelineEntry
    from ...core.events import EventManager
    from ..entities.unit import Unit
    from ..map import GridWorld


@dataclass
class PendingSpawn:
    """A telegraphed spawn waiting on the timeline."""
    position: Vector2
    source_unit_id: int
    hp: int
    max_hp: int
    vision_range: int
    spawn_time: int
    entry: "TimelineEntry"


class CombatManager:
    """Applies melee damage and owns the death -> corruption -> spawn rule."""

    def __init__(
        self,
        world: "GridWorld",
        timeline: "Timeline",
        event_manager: "EventManager",
        rules: Optional[RulesConfig] = None,
        on_roster_changed: Optional[Callable[[], None]] = None,
    ):
        self.world = world
        self.timeline = timeline
        self.event_manager = event_manager
        self.rules = rules or RulesConfig()
        # Called after a death or a spawn so derived state (visibility) can refresh
        self.on_roster_changed = on_roster_changed
        self._pending: dict[Vector2, PendingSpawn] = {}

    @property
    def pending_spawns(self) -> list[PendingSpawn]:
        """Telegraphed spawns that have not happened yet, soonest first."""
        return sorted(self._pending.values(), key=lambda spawn: spawn.entry.sequence_id)

    def _emit_log(self, message: str, category: str = "BATTLE", level: str = "INFO") -> None:
        self.event_manager.publish_immediate(
            LogMessage(
                timeline_time=self.timeline.current_time,
                message=message,
                category=category,
                level=level,
                source="CombatManager",
            ),
            source="CombatManager",
        )

    def _notify_roster_changed(self) -> None:
        if self.on_roster_changed is not None:
            self.on_roster_changed()

    # ============== Melee ==============

    def resolve_melee(self, attacker: "Unit", target: "Unit") -> int:
        """Apply one fixed-damage strike. Returns the damage dealt."""
        assert attacker.alive and target.alive, "Melee between dead units"
        assert attacker.position.is_adjacent_to(target.position), (
            f"{attacker.name} at {attacker.position} cannot reach {target.name} at {target.position}"
        )

        damage = target.take_damage(self.rules.melee_damage)
        killed = target.hp <= 0

        self.event_manager.publish_immediate(
            AttackResolved(
                timeline_time=self.timeline.current_time,
                attacker_id=attacker.unit_id,
                target_id=target.unit_id,
                damage=damage,
                target_hp=target.hp,
                target_killed=killed,
            ),
            source="CombatManager",
        )
        self._emit_log(f"{attacker.name} hits {target.name} for {damage} ({target.hp}/{target.max_hp} HP)")

        if killed:
            self.kill(target)
        return damage

    # ============== Death and corruption ==============

    def kill(self, unit: "Unit") -> None:
        """Remove a unit from play, corrupt its tile and telegraph the spawn."""
        if not unit.alive:
            return

        position = unit.position
        unit.alive = False
        unit.busy = False
        unit.hp = 0
        self.world.remove_unit(unit.unit_id)
        self.world.set_walkable(position, False)

        self.event_manager.publish_immediate(
            UnitDied(
                timeline_time=self.timeline.current_time,
                unit_id=unit.unit_id,
                faction=unit.faction,
                position=position,
            ),
            source="CombatManager",
        )
        self._emit_log(f"{unit.name} falls; the ground at ({position.x}, {position.y}) is corrupted")

        self._schedule_spawn(unit, position)
        self._notify_roster_changed()

    def _schedule_spawn(self, fallen: "Unit", position: Vector2) -> None:
        # The risen unit starts wounded but keeps the fallen unit's maximum
        hp = int(fallen.max_hp * self.rules.spawn_hp_factor)
        if hp < 1:
            self._emit_log(f"{fallen.name} is too weak to rise again", level="DEBUG")
            return
        if self.world.is_occupied(position) or position in self._pending:
            return

        entry = self.timeline.schedule(
            self.rules.spawn_delay_ms,
            lambda: self._execute_spawn(position),
            f"spawn:{position.y},{position.x}",
            "spawn",
            f"corruption rises at ({position.x}, {position.y})",
        )
        self._pending[position] = PendingSpawn(
            position=position,
            source_unit_id=fallen.unit_id,
            hp=hp,
            max_hp=fallen.max_hp,
            vision_range=fallen.vision_range,
            spawn_time=entry.execution_time,
            entry=entry,
        )
        self.event_manager.publish_immediate(
            SpawnScheduled(
                timeline_time=self.timeline.current_time,
                position=position,
                source_unit_id=fallen.unit_id,
                spawn_time=entry.execution_time,
            ),
            source="CombatManager",
        )

    def _execute_spawn(self, position: Vector2) -> None:
        pending = self._pending.pop(position, None)
        if pending is None:
            return

        if self.world.is_occupied(position):
            self._publish_cancel(pending, "tile occupied")
            return

        unit = create_unit(
            self.world.next_unit_id(),
            self.rules.spawn_archetype,
            Faction.HOSTILE,
            position,
            hp=pending.hp,
            max_hp=pending.max_hp,
            vision_range=pending.vision_range,
        )
        added = self.world.add_unit(unit)
        assert added, f"Spawn at {position} rejected by the grid"

        self.event_manager.publish_immediate(
            UnitSpawned(
                timeline_time=self.timeline.current_time,
                unit_id=unit.unit_id,
                faction=unit.faction,
                position=position,
                source_unit_id=pending.source_unit_id,
            ),
            source="CombatManager",
        )
        self._emit_log(f"{unit.name} rises at ({position.x}, {position.y})")
        self._notify_roster_changed()

    # ============== Cancellation ==============

    def cancel_pending_spawns(self, reason: str = "canceled") -> int:
        """Discard every telegraphed spawn. Returns how many were dropped."""
        pending = self.pending_spawns
        self._pending.clear()
        for spawn in pending:
            self.timeline.cancel(spawn.entry)
            self._publish_cancel(spawn, reason)
        return len(pending)

    def _publish_cancel(self, spawn: PendingSpawn, reason: str) -> None:
        self.event_manager.publish_immediate(
            SpawnCanceled(
                timeline_time=self.timeline.current_time,
                position=spawn.position,
                source_unit_id=spawn.source_unit_id,
                reason=reason,
            ),
            source="CombatManager",
        )
        self._emit_log(
            f"Spawn at ({spawn.position.x}, {spawn.position.y}) canceled: {reason}",
            level="DEBUG",
        )
