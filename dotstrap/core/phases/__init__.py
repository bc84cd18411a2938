"""
Phase catalogue — the ordered bootstrap.

Phases are declared in dependency order: package manager before
packages, clone before setup, runtimes before gems. Only build tools
and the package manager bootstrap are fatal; a failure anywhere else
is recorded and the run continues.
"""

from __future__ import annotations

from dotstrap.core.engine.runner import Phase
from dotstrap.core.phases.ecosystem import secondary_packages
from dotstrap.core.phases.full_install import full_install
from dotstrap.core.phases.local import local_customization
from dotstrap.core.phases.repository import clone, setup
from dotstrap.core.phases.runtimes import runtimes
from dotstrap.core.phases.shell import default_shell
from dotstrap.core.phases.summary import summary
from dotstrap.core.phases.system import (
    build_tools,
    minimal_packages,
    package_manager,
    preflight,
    rosetta,
)


def build_phases() -> list[Phase]:
    """The full phase list, in execution order."""
    return [
        Phase("preflight", 0, "Preflight checks", preflight, fatal=True, mutating=False),
        Phase("build_tools", 1, "Build tools", build_tools, fatal=True),
        Phase("rosetta", 2, "Rosetta 2", rosetta),
        Phase("package_manager", 3, "Package manager", package_manager, fatal=True),
        Phase("minimal_packages", 4, "Minimal packages", minimal_packages),
        Phase("clone", 5, "Clone dotfiles", clone),
        # Invoked even in dry-run, with --dry-run forwarded
        Phase("setup", 6, "Run setup script", setup),
        Phase("runtimes", 7, "asdf + language runtimes", runtimes),
        Phase("secondary_packages", 8, "Gems + npm packages", secondary_packages),
        Phase("full_install", 9, "Full package install", full_install),
        Phase("local", 10, "Local customization", local_customization),
        Phase("shell", 11, "Zsh + Zap", default_shell),
        Phase("summary", 12, "Summary", summary, mutating=False),
    ]


PHASE_NAMES = [p.name for p in build_phases()]

__all__ = ["PHASE_NAMES", "build_phases"]
