"""Use cases — the entry points the CLI calls."""
