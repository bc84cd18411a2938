"""Core domain: models, configuration, detection, engine, and phases."""
