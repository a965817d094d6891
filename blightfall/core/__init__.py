"""Core engine pieces: data types, configuration, events and scheduling."""
