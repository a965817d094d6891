"""
Basic test fixtures for the blightfall test suite.

Provides small grids, rule sets and a wired-up controller for testing.
"""

import sys
import os
import pytest

# Add the project root to the Python path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from blightfall.core.config import RulesConfig
from blightfall.core.data import Faction, Vector2
from blightfall.core.engine import Timeline
from blightfall.core.events import EventManager
from blightfall.game.entities import Unit
from blightfall.game.managers import LogManager, TurnController
from blightfall.game.map import GridWorld


def make_unit(unit_id, y, x, faction=Faction.PLAYER, action_points=2, vision_range=3,
              hp=100, max_hp=100, archetype=None):
    """Build a unit with test-friendly defaults (position in (y, x) order)."""
    if archetype is None:
        archetype = "survivor" if faction is Faction.PLAYER else "zombie"
    return Unit(
        unit_id=unit_id,
        faction=faction,
        position=Vector2(y, x),
        action_points=action_points,
        vision_range=vision_range,
        hp=hp,
        max_hp=max_hp,
        archetype=archetype,
    )


@pytest.fixture
def rules():
    """Default rule constants without touching the disk."""
    return RulesConfig()


@pytest.fixture
def event_manager():
    """Create an event manager for testing."""
    return EventManager(enable_debug_logging=False)


@pytest.fixture
def timeline():
    """Create a fresh timeline for testing."""
    return Timeline()


@pytest.fixture
def small_world():
    """Create a small 5x5 empty grid for testing."""
    return GridWorld(width=5, height=5)


@pytest.fixture
def open_world():
    """10x10 empty grid."""
    return GridWorld(width=10, height=10)


@pytest.fixture
def controller(open_world, rules, event_manager):
    """Controller over an empty 10x10 grid with no units yet."""
    return TurnController(open_world, rules, event_manager)


@pytest.fixture
def log_manager(event_manager):
    return LogManager(event_manager)


@pytest.fixture
def recorded_events(event_manager):
    """Every event delivered on the bus, in order."""
    events = []
    event_manager.subscribe_all(events.append, subscriber_name="recorder")
    return events
