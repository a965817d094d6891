"""blightfall - movement, range, visibility and turn core for a grid tactics game."""

__version__ = "0.1.0"
