"""
Exception hierarchy.

Only two error classes matter at runtime: fatal errors (raised and
propagated up to the CLI) and recoverable ones (recorded as warnings
on a PhaseResult). Adapters never raise; everything here is raised by
detection, configuration, or phases.
"""

from __future__ import annotations


class BootstrapError(Exception):
    """Base class for all dotstrap errors."""


class UnsupportedPlatformError(BootstrapError):
    """The host OS or Linux distribution is not supported."""


class ConfigError(BootstrapError):
    """Raised when the settings file is invalid or unreadable."""


class PhaseFailed(BootstrapError):
    """A phase could not complete.

    Whether this halts the run depends on the phase's ``fatal`` flag,
    never on the raising site.
    """

    def __init__(self, message: str, command: str | None = None):
        super().__init__(message)
        self.message = message
        self.command = command
