"""Unit archetype templates.

Templates are loaded from ``assets/data/unit_templates.yaml`` and converted to
data structures that specify the initial stats of each archetype
(survivor, raider, zombie, ...).
"""

import os
from dataclasses import dataclass
from typing import Optional

import yaml

from ...core.data import Faction, Vector2
from .unit import Unit


@dataclass(frozen=True)
class UnitTemplate:
    """Initial stats for one archetype."""

    max_hp: int
    vision_range: int
    action_points: float


def _load_unit_templates(yaml_path: Optional[str] = None) -> dict[str, UnitTemplate]:
    """Load unit templates from YAML file.

    Returns:
        Dictionary mapping archetype names to UnitTemplate objects
    """
    if yaml_path is None:
        package_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
        yaml_path = os.path.join(package_root, "assets", "data", "unit_templates.yaml")

    try:
        with open(yaml_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"Unit templates file not found: {yaml_path}")

    try:
        templates = {}
        for archetype, template_data in data["unit_templates"].items():
            templates[archetype] = UnitTemplate(
                max_hp=int(template_data["max_hp"]),
                vision_range=int(template_data["vision_range"]),
                action_points=float(template_data.get("action_points", 0)),
            )
        return templates

    except KeyError as e:
        raise KeyError(f"Invalid template structure in {yaml_path}: {e}")
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid template value in {yaml_path}: {e}")


# Load templates from YAML file
UNIT_TEMPLATES: dict[str, UnitTemplate] = _load_unit_templates()


def get_template(archetype: str) -> UnitTemplate:
    """Get the template for an archetype.

    Raises:
        KeyError: If the archetype is not recognized
    """
    if archetype not in UNIT_TEMPLATES:
        raise KeyError(f"No template found for archetype: {archetype}")
    return UNIT_TEMPLATES[archetype]


def create_unit(
    unit_id: int,
    archetype: str,
    faction: Faction,
    position: Vector2,
    name: str = "",
    **overrides,
) -> Unit:
    """Create a unit from an archetype template.

    Keyword overrides (hp, max_hp, vision_range, action_points) replace the
    template values, which is how scenarios tune individual units.
    """
    template = get_template(archetype)
    max_hp = int(overrides.pop("max_hp", template.max_hp))
    stats = {
        "max_hp": max_hp,
        "hp": int(overrides.pop("hp", max_hp)),
        "vision_range": int(overrides.pop("vision_range", template.vision_range)),
        "action_points": float(overrides.pop("action_points", template.action_points)),
    }
    if overrides:
        raise ValueError(f"Unknown unit stat overrides: {sorted(overrides)}")

    return Unit(
        unit_id=unit_id,
        faction=faction,
        position=position,
        archetype=archetype,
        name=name,
        **stats,
    )
