"""
Unit tests for GridWorld.

Tests tile queries, the unit roster and the occupancy index that must stay
in sync with it.
"""
import numpy as np
import pytest

from blightfall.core.data import Faction, Vector2
from blightfall.game.map import EMPTY, GridWorld
from tests.conftest import make_unit


class TestGridWorldInitialization:

    @pytest.mark.parametrize("width,height", [(1, 1), (5, 5), (10, 4), (3, 12)])
    def test_dimensions(self, width, height):
        world = GridWorld(width, height)

        assert world.walkable.shape == (height, width)
        assert world.occupancy.shape == (height, width)
        assert world.walkable.all()
        assert (world.occupancy == EMPTY).all()
        assert len(world) == 0

    @pytest.mark.parametrize("width,height", [(0, 5), (5, 0), (-1, 3)])
    def test_invalid_dimensions(self, width, height):
        with pytest.raises(ValueError):
            GridWorld(width, height)

    def test_from_rows(self):
        world = GridWorld.from_rows([
            "....",
            ".#..",
            "...X",
        ])

        assert (world.width, world.height) == (4, 3)
        assert not world.is_walkable(Vector2(1, 1))
        assert not world.is_walkable(Vector2(2, 3))
        assert world.is_walkable(Vector2(0, 0))

    def test_from_rows_rejects_ragged_input(self):
        with pytest.raises(ValueError):
            GridWorld.from_rows(["...", ".."])
        with pytest.raises(ValueError):
            GridWorld.from_rows([])


class TestTileQueries:

    @pytest.mark.parametrize("position,expected", [
        (Vector2(0, 0), True),
        (Vector2(4, 4), True),
        (Vector2(-1, 0), False),
        (Vector2(0, 5), False),
        (Vector2(5, 2), False),
    ])
    def test_in_bounds(self, small_world, position, expected):
        assert small_world.in_bounds(position) is expected

    def test_off_grid_is_not_walkable(self, small_world):
        assert not small_world.is_walkable(Vector2(-1, 2))

    def test_set_walkable_flips_tile(self, small_world):
        small_world.set_walkable(Vector2(2, 2), False)

        assert not small_world.is_walkable(Vector2(2, 2))
        assert small_world.is_blocked(Vector2(2, 2))

    def test_set_walkable_off_grid_fails_fast(self, small_world):
        with pytest.raises(AssertionError):
            small_world.set_walkable(Vector2(9, 9), False)

    def test_is_blocked_ignores_own_unit(self, small_world):
        small_world.add_unit(make_unit(1, 2, 2))

        assert small_world.is_blocked(Vector2(2, 2))
        assert not small_world.is_blocked(Vector2(2, 2), ignore_unit_id=1)

    def test_blocked_mask(self, small_world):
        small_world.set_walkable(Vector2(0, 0), False)
        small_world.add_unit(make_unit(1, 1, 1))
        small_world.add_unit(make_unit(2, 3, 3))

        mask = small_world.blocked_mask(ignore_unit_id=1)

        assert mask.dtype == np.bool_
        assert mask[0, 0] and mask[3, 3]
        assert not mask[1, 1]
        assert int(mask.sum()) == 2


class TestRoster:

    def test_add_and_get_unit(self, small_world):
        unit = make_unit(1, 2, 3)

        assert small_world.add_unit(unit)
        assert small_world.get_unit(1) is unit
        assert small_world.get_unit_at(Vector2(2, 3)) is unit
        assert small_world.is_occupied(Vector2(2, 3))
        assert 1 in small_world

    def test_add_unit_rejects_occupied_tile(self, small_world):
        small_world.add_unit(make_unit(1, 2, 2))

        assert not small_world.add_unit(make_unit(2, 2, 2))
        assert len(small_world) == 1

    def test_add_unit_rejects_off_grid_and_duplicates(self, small_world):
        assert not small_world.add_unit(make_unit(1, 7, 7))
        assert small_world.add_unit(make_unit(1, 0, 0))
        assert not small_world.add_unit(make_unit(1, 1, 1))

    def test_unit_may_stand_on_corrupted_tile(self, small_world):
        small_world.set_walkable(Vector2(2, 2), False)

        assert small_world.add_unit(make_unit(5, 2, 2, faction=Faction.HOSTILE))

    def test_units_sorted_and_filtered(self, small_world):
        small_world.add_unit(make_unit(3, 0, 0, faction=Faction.HOSTILE))
        small_world.add_unit(make_unit(1, 1, 1))
        small_world.add_unit(make_unit(2, 2, 2))

        assert [unit.unit_id for unit in small_world.units] == [1, 2, 3]
        assert [unit.unit_id for unit in small_world.units_of(Faction.HOSTILE)] == [3]

    def test_remove_unit_clears_tile(self, small_world):
        small_world.add_unit(make_unit(1, 2, 2))

        removed = small_world.remove_unit(1)

        assert removed is not None and removed.unit_id == 1
        assert not small_world.is_occupied(Vector2(2, 2))
        assert small_world.remove_unit(1) is None

    def test_ids_are_never_reused(self, small_world):
        small_world.add_unit(make_unit(4, 0, 0))
        small_world.remove_unit(4)

        assert small_world.next_unit_id() == 5
        assert small_world.next_unit_id() == 6

    def test_move_unit(self, small_world):
        unit = make_unit(1, 0, 0)
        small_world.add_unit(unit)

        assert small_world.move_unit(1, Vector2(0, 1))
        assert unit.position == Vector2(0, 1)
        assert small_world.occupancy[0, 0] == EMPTY
        assert small_world.occupancy[0, 1] == 1

    def test_move_unit_refuses_blocked_tiles(self, small_world):
        small_world.add_unit(make_unit(1, 0, 0))
        small_world.add_unit(make_unit(2, 0, 1))
        small_world.set_walkable(Vector2(1, 0), False)

        assert not small_world.move_unit(1, Vector2(0, 1))
        assert not small_world.move_unit(1, Vector2(1, 0))
        assert not small_world.move_unit(1, Vector2(0, -1))
        assert not small_world.move_unit(99, Vector2(2, 2))

    def test_check_integrity_passes(self, small_world):
        small_world.add_unit(make_unit(1, 0, 0))
        small_world.add_unit(make_unit(2, 4, 4))
        small_world.move_unit(1, Vector2(1, 1))

        small_world.check_integrity()

    def test_desynchronised_occupancy_fails_fast(self, small_world):
        small_world.add_unit(make_unit(1, 0, 0))
        small_world.occupancy[0, 0] = EMPTY

        with pytest.raises(AssertionError):
            small_world.check_integrity()

    def test_stale_occupancy_lookup_fails_fast(self, small_world):
        small_world.add_unit(make_unit(1, 0, 0))
        small_world.occupancy[3, 3] = 1

        with pytest.raises(AssertionError):
            small_world.get_unit_at(Vector2(3, 3))
