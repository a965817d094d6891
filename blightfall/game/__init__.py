"""Game rules: grid, units, movement, visibility, AI and the turn controller."""
