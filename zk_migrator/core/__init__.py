"""Core components: codec, endpoint resolution, sessions and the migration engine."""
