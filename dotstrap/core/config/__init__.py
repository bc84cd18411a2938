"""Configuration — settings file loading and manifest parsing."""
