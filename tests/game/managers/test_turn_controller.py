"""
Unit tests for the turn controller state machine.

Covers selection, preview and commit, timed movement with deferred AP
deduction, melee through a committed path, the hostile sweep and phase
transitions that wait on outstanding moves.
"""
import pytest

from blightfall.core.data import Faction, TurnPhase, Vector2, VisibilityState
from blightfall.core.events import EventType
from tests.conftest import make_unit


def _of_type(events, event_type):
    return [event for event in events if event.event_type is event_type]


def _hostile(unit_id, y, x, hp=80):
    return make_unit(unit_id, y, x, faction=Faction.HOSTILE, action_points=0, hp=hp, max_hp=80)


def _walk(controller, *positions):
    for position in positions:
        assert controller.extend_path(position), position


class TestLifecycle:

    def test_setup_starts_player_phase(self, controller, recorded_events):
        controller.setup([make_unit(1, 1, 1, vision_range=2)])

        assert controller.phase is TurnPhase.PLAYER_PHASE
        assert controller.turn == 1
        started = _of_type(recorded_events, EventType.TURN_STARTED)
        assert [(e.turn, e.phase) for e in started] == [(1, TurnPhase.PLAYER_PHASE)]
        assert controller.visibility.is_visible(Vector2(1, 3))

    def test_setup_rejects_overlapping_units(self, controller):
        with pytest.raises(ValueError):
            controller.setup([make_unit(1, 1, 1), make_unit(2, 1, 1)])

    def test_reset_discards_moves_and_spawns(self, controller, open_world):
        survivor = make_unit(1, 5, 5)
        doomed = make_unit(2, 0, 0)
        controller.setup([survivor, doomed])
        controller.combat.kill(doomed)
        controller.select_unit(1)
        _walk(controller, Vector2(5, 6), Vector2(5, 7))
        controller.commit_path()
        controller.update(150)

        controller.reset()

        assert not survivor.busy
        assert controller.busy_units == frozenset()
        assert controller.pending_spawns == []
        assert controller.timeline.is_empty
        assert controller.selected_unit is None
        assert controller.visibility.explored_count == 0

        controller.run_until_idle()
        assert survivor.position == Vector2(5, 6)
        assert not open_world.is_occupied(Vector2(0, 0))


class TestSelection:

    def test_select_computes_range(self, controller, recorded_events):
        controller.setup([make_unit(1, 1, 1, action_points=2)])

        assert controller.select_unit(1)

        assert controller.selected_unit.unit_id == 1
        assert Vector2.from_xy(9, 1) in controller.movement_range
        selected = _of_type(recorded_events, EventType.UNIT_SELECTED)
        assert selected[-1].reachable_tiles == len(controller.movement_range)

    def test_select_at_position(self, controller):
        controller.setup([make_unit(1, 3, 4)])

        assert controller.select_at(Vector2(3, 4))
        assert controller.selected_unit.unit_id == 1

    @pytest.mark.parametrize("unit_id", [42, 2, 3])
    def test_invalid_selection_is_a_no_op(self, controller, recorded_events, unit_id):
        controller.setup([
            make_unit(1, 1, 1),
            make_unit(2, 2, 2, action_points=0),
            _hostile(3, 5, 5),
        ])
        controller.select_unit(1)

        assert not controller.select_unit(unit_id)

        assert controller.selected_unit.unit_id == 1
        assert len(_of_type(recorded_events, EventType.SELECTION_REJECTED)) == 1

    def test_dead_unit_cannot_be_selected(self, controller):
        victim = make_unit(1, 1, 1)
        controller.setup([victim, make_unit(2, 5, 5)])
        controller.combat.kill(victim)

        assert not controller.select_unit(1)

    @pytest.mark.parametrize("position", [Vector2(-1, 0), Vector2(10, 3), Vector2(4, 4)])
    def test_select_at_bad_tile(self, controller, recorded_events, position):
        controller.setup([make_unit(1, 1, 1)])

        assert not controller.select_at(position)

        rejected = _of_type(recorded_events, EventType.SELECTION_REJECTED)
        assert rejected[-1].position == position

    def test_rejection_is_logged_as_warning(self, controller, log_manager):
        controller.setup([make_unit(1, 1, 1, action_points=0)])

        controller.select_unit(1)

        warnings = [entry for entry in log_manager.messages if entry.category.name == "WARNING"]
        assert warnings and "no action points" in warnings[-1].text

    def test_selecting_another_unit_clears_preview(self, controller, recorded_events):
        controller.setup([make_unit(1, 1, 1), make_unit(2, 5, 5)])
        controller.select_unit(1)
        _walk(controller, Vector2(1, 2))

        assert controller.select_unit(2)

        assert controller.path_preview == []
        cleared = _of_type(recorded_events, EventType.SELECTION_CLEARED)
        assert [event.unit_id for event in cleared] == [1]

    def test_deselect(self, controller):
        controller.setup([make_unit(1, 1, 1)])
        controller.select_unit(1)

        controller.deselect()

        assert controller.selected_unit is None
        assert controller.movement_range is None
        assert not controller.extend_path(Vector2(1, 2))

    def test_clear_path_keeps_selection(self, controller):
        controller.setup([make_unit(1, 1, 1)])
        controller.select_unit(1)
        _walk(controller, Vector2(1, 2), Vector2(1, 3))

        controller.clear_path()

        assert controller.path_preview == []
        assert controller.selected_unit.unit_id == 1


class TestCommit:

    def test_commit_plays_steps_then_settles(self, controller, recorded_events):
        mover = make_unit(1, 5, 5, action_points=2)
        controller.setup([mover])
        controller.select_unit(1)
        _walk(controller, Vector2(5, 6), Vector2(6, 7), Vector2(6, 8))

        task = controller.commit_path()

        assert task is not None
        assert mover.busy
        assert controller.busy_units == frozenset({1})
        assert mover.position == Vector2(5, 5)

        controller.update(150)
        assert mover.position == Vector2(5, 6)
        assert mover.action_points == 2
        assert mover.busy

        controller.update(225)
        assert mover.position == Vector2(6, 7)
        assert mover.action_points == 2

        controller.update(150)
        assert task.done
        assert mover.position == Vector2(6, 8)
        # 3.5 MP rounds up to 1 AP
        assert mover.action_points == 1
        assert not mover.busy
        assert controller.selected_unit is None

        completed = _of_type(recorded_events, EventType.MOVEMENT_COMPLETED)
        assert len(completed) == 1
        assert completed[0].steps_taken == 3
        assert completed[0].ap_spent == 1.0
        assert completed[0].timeline_time == 525

    def test_visibility_follows_each_step(self, controller, recorded_events):
        scout = make_unit(1, 0, 0, vision_range=1)
        controller.setup([scout])
        controller.select_unit(1)
        _walk(controller, Vector2(0, 1), Vector2(0, 2), Vector2(0, 3))
        controller.commit_path()

        controller.update(150)
        assert controller.visibility.is_visible(Vector2(0, 2))
        assert not controller.visibility.is_visible(Vector2(0, 3))

        controller.update(150)
        assert controller.visibility.is_visible(Vector2(0, 3))
        assert controller.visibility.state_at(Vector2(1, 0)) is VisibilityState.EXPLORED

        moved_or_updated = [
            event.event_type for event in recorded_events
            if event.event_type in (EventType.UNIT_MOVED, EventType.VISIBILITY_UPDATED)
        ]
        for index, event_type in enumerate(moved_or_updated):
            if event_type is EventType.UNIT_MOVED:
                assert moved_or_updated[index + 1] is EventType.VISIBILITY_UPDATED

    def test_busy_unit_cannot_be_reselected(self, controller):
        controller.setup([make_unit(1, 5, 5)])
        controller.select_unit(1)
        _walk(controller, Vector2(5, 6))
        controller.commit_path()

        assert not controller.select_unit(1)
        assert controller.commit_path() is None

    def test_commit_without_selection_rejected(self, controller, recorded_events):
        controller.setup([make_unit(1, 5, 5)])

        assert controller.commit_path() is None

        rejected = _of_type(recorded_events, EventType.COMMIT_REJECTED)
        assert rejected[-1].reason == "no unit selected"

    def test_empty_preview_rejected(self, controller, recorded_events):
        controller.setup([make_unit(1, 5, 5)])
        controller.select_unit(1)

        assert controller.commit_path() is None
        assert len(_of_type(recorded_events, EventType.COMMIT_REJECTED)) == 1
        assert controller.timeline.is_empty

    def test_stale_budget_rejected_before_animation(self, controller, recorded_events):
        mover = make_unit(1, 5, 5, action_points=2)
        controller.setup([mover])
        controller.select_unit(1)
        _walk(controller, Vector2(5, 6), Vector2(5, 7), Vector2(5, 8))
        mover.spend_action_points(1.5)

        assert controller.commit_path() is None
        assert not mover.busy
        assert _of_type(recorded_events, EventType.PATH_COMMITTED) == []

    def test_path_committed_event(self, controller, recorded_events):
        controller.setup([make_unit(1, 5, 5)])
        controller.select_unit(1)
        _walk(controller, Vector2(6, 6))
        controller.commit_path()

        committed = _of_type(recorded_events, EventType.PATH_COMMITTED)[0]
        assert [step.to_dict() for step in committed.steps] == [{"x": 6, "y": 6, "isDiagonal": True}]
        assert committed.ap_cost == 0.5

    def test_blocked_step_halts_and_charges_realized_cost(self, controller, open_world):
        mover = make_unit(1, 5, 5, action_points=2)
        controller.setup([mover, make_unit(2, 0, 0)])
        controller.select_unit(1)
        _walk(controller, Vector2(5, 6), Vector2(5, 7), Vector2(5, 8), Vector2(5, 9))
        controller.commit_path()

        controller.update(150)
        open_world.set_walkable(Vector2(5, 7), False)
        controller.run_until_idle()

        assert mover.position == Vector2(5, 6)
        assert mover.action_points == 1.5
        assert not mover.busy

    def test_when_idle_waits_for_movement(self, controller):
        calls = []
        controller.setup([make_unit(1, 5, 5)])
        controller.select_unit(1)
        _walk(controller, Vector2(5, 6))
        controller.commit_path()

        controller.when_idle(lambda: calls.append(controller.timeline.current_time))
        assert calls == []

        controller.run_until_idle()
        assert calls == [150]


class TestMeleeThroughPath:

    def test_attack_after_last_step(self, controller, recorded_events):
        attacker = make_unit(1, 5, 5, action_points=2)
        target = _hostile(2, 5, 8)
        controller.setup([attacker, target])
        controller.select_unit(1)
        _walk(controller, Vector2(5, 6), Vector2(5, 7))

        assert controller.extend_path(Vector2(5, 8))
        assert controller.attack_target == Vector2(5, 8)
        controller.commit_path()
        controller.run_until_idle()

        assert attacker.position == Vector2(5, 7)
        assert target.hp == 55
        assert attacker.action_points == 0.5
        resolved = _of_type(recorded_events, EventType.ATTACK_RESOLVED)
        assert [(e.attacker_id, e.target_id, e.damage) for e in resolved] == [(1, 2, 25)]

    def test_attack_from_standing(self, controller):
        attacker = make_unit(1, 5, 5, action_points=1)
        target = _hostile(2, 6, 6, hp=20)
        controller.setup([attacker, target, make_unit(3, 0, 0)])
        controller.select_unit(1)

        assert controller.extend_path(Vector2(6, 6))
        task = controller.commit_path()
        controller.update(0)

        assert task.done
        assert not target.alive
        assert attacker.action_points == 0
        assert attacker.position == Vector2(5, 5)


class TestPhaseTransitions:

    def test_end_turn_runs_hostile_sweep(self, controller, recorded_events):
        survivor = make_unit(1, 0, 0, action_points=2)
        zombie = _hostile(2, 9, 9)
        controller.setup([survivor, zombie])

        assert controller.end_turn()
        assert controller.phase is TurnPhase.HOSTILE_PHASE
        assert zombie.busy

        controller.run_until_idle()

        assert zombie.position == Vector2(8, 9)
        assert controller.phase is TurnPhase.PLAYER_PHASE
        assert controller.turn == 2
        phases = [(e.turn, e.phase) for e in _of_type(recorded_events, EventType.TURN_STARTED)]
        assert phases == [
            (1, TurnPhase.PLAYER_PHASE),
            (1, TurnPhase.HOSTILE_PHASE),
            (2, TurnPhase.PLAYER_PHASE),
        ]
        ended = [(e.turn, e.phase) for e in _of_type(recorded_events, EventType.TURN_ENDED)]
        assert ended == [(1, TurnPhase.PLAYER_PHASE), (1, TurnPhase.HOSTILE_PHASE)]

    def test_player_ap_reset_at_player_phase_start(self, controller):
        survivor = make_unit(1, 0, 0, action_points=2)
        controller.setup([survivor, _hostile(2, 9, 9)])
        controller.select_unit(1)
        _walk(controller, Vector2(0, 1))
        controller.commit_path()
        controller.run_until_idle()
        assert survivor.action_points == 1.5

        controller.end_turn()
        controller.run_until_idle()

        assert survivor.action_points == controller.rules.ap_per_turn

    def test_hostile_phase_waits_for_step_animation(self, controller):
        controller.setup([make_unit(1, 0, 0), _hostile(2, 9, 9)])
        controller.end_turn()

        controller.update(149)
        assert controller.phase is TurnPhase.HOSTILE_PHASE

        controller.update(1)
        assert controller.phase is TurnPhase.PLAYER_PHASE

    def test_hostiles_act_one_after_another(self, controller, recorded_events):
        controller.setup([make_unit(1, 0, 0), _hostile(2, 9, 9), _hostile(3, 9, 7)])
        controller.end_turn()
        controller.run_until_idle()

        moved = _of_type(recorded_events, EventType.UNIT_MOVED)
        assert [(e.unit_id, e.to_position, e.timeline_time) for e in moved] == [
            (2, Vector2(8, 9), 150),
            (3, Vector2(8, 7), 300),
        ]

    def test_adjacent_hostile_attacks_instead_of_moving(self, controller, recorded_events):
        survivor = make_unit(1, 4, 4, hp=100)
        zombie = _hostile(2, 5, 5)
        controller.setup([survivor, zombie])

        controller.end_turn()

        assert survivor.hp == 75
        assert zombie.position == Vector2(5, 5)
        assert controller.phase is TurnPhase.PLAYER_PHASE
        assert _of_type(recorded_events, EventType.UNIT_MOVED) == []

    def test_hostile_skips_blocked_step(self, controller, open_world):
        open_world.set_walkable(Vector2(8, 9), False)
        zombie = _hostile(2, 9, 9)
        controller.setup([make_unit(1, 0, 0), zombie])

        controller.end_turn()

        assert controller.phase is TurnPhase.PLAYER_PHASE
        assert zombie.position == Vector2(9, 9)

    def test_end_turn_waits_for_busy_unit(self, controller, recorded_events):
        mover = make_unit(1, 5, 5)
        controller.setup([mover])
        controller.select_unit(1)
        _walk(controller, Vector2(5, 6), Vector2(5, 7))
        controller.commit_path()

        assert controller.end_turn()
        assert controller.phase is TurnPhase.PLAYER_PHASE
        assert not controller.end_turn()

        controller.update(150)
        assert controller.phase is TurnPhase.PLAYER_PHASE

        controller.update(150)
        order = [
            e.event_type for e in recorded_events
            if e.event_type in (EventType.MOVEMENT_COMPLETED, EventType.TURN_ENDED)
        ]
        assert order[:2] == [EventType.MOVEMENT_COMPLETED, EventType.TURN_ENDED]
        assert controller.turn == 2

    def test_turn_end_request_closes_player_actions(self, controller, recorded_events):
        controller.setup([make_unit(1, 5, 5), make_unit(2, 0, 0)])
        controller.select_unit(1)
        _walk(controller, Vector2(5, 6))
        controller.commit_path()
        assert controller.end_turn()

        assert not controller.select_unit(2)
        assert not controller.extend_path(Vector2(0, 1))
        assert controller.commit_path() is None

        selection = _of_type(recorded_events, EventType.SELECTION_REJECTED)[-1]
        commit = _of_type(recorded_events, EventType.COMMIT_REJECTED)[-1]
        assert selection.reason == commit.reason == "turn is ending"

        controller.update(150)
        assert controller.turn == 2
        assert controller.select_unit(2)

    def test_visibility_refreshed_between_phases(self, controller, recorded_events):
        controller.setup([make_unit(1, 0, 0), _hostile(2, 9, 9)])
        controller.end_turn()
        controller.run_until_idle()

        phase_events = [
            e.event_type for e in recorded_events
            if e.event_type in (EventType.TURN_ENDED, EventType.VISIBILITY_UPDATED, EventType.TURN_STARTED)
        ]
        ended_at = [i for i, event_type in enumerate(phase_events) if event_type is EventType.TURN_ENDED]
        assert len(ended_at) == 2
        for index in ended_at:
            assert phase_events[index + 1] is EventType.VISIBILITY_UPDATED
            assert phase_events[index + 2] is EventType.TURN_STARTED

    def test_auto_end_when_players_exhausted(self, controller):
        survivor = make_unit(1, 5, 5, action_points=0.5)
        zombie = _hostile(2, 9, 0)
        controller.setup([survivor, zombie])
        controller.select_unit(1)
        _walk(controller, Vector2(5, 6))
        controller.commit_path()

        controller.run_until_idle()

        assert zombie.position == Vector2(9, 1)
        assert controller.turn == 2
        assert controller.phase is TurnPhase.PLAYER_PHASE
        assert survivor.action_points == 2

    def test_no_auto_end_while_a_player_has_ap(self, controller):
        controller.setup([make_unit(1, 5, 5, action_points=0.5), make_unit(2, 0, 0, action_points=2)])
        controller.select_unit(1)
        _walk(controller, Vector2(5, 6))
        controller.commit_path()

        controller.run_until_idle()

        assert controller.turn == 1
        assert controller.phase is TurnPhase.PLAYER_PHASE

    def test_player_actions_rejected_in_hostile_phase(self, controller):
        controller.setup([make_unit(1, 0, 0), _hostile(2, 9, 9)])
        controller.end_turn()

        assert controller.phase is TurnPhase.HOSTILE_PHASE
        assert not controller.select_unit(1)
        assert controller.commit_path() is None
        assert not controller.end_turn()
