"""Unit entities and archetype templates."""

from .unit import Unit
from .unit_templates import UnitTemplate, UNIT_TEMPLATES, get_template, create_unit

__all__ = ["Unit", "UnitTemplate", "UNIT_TEMPLATES", "get_template", "create_unit"]
