"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest
import yaml

from tests.simulated_host import SimulatedHost


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """An empty home directory for the run."""
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def shells_file(tmp_path: Path) -> Path:
    """Stand-in for /etc/shells."""
    path = tmp_path / "etc" / "shells"
    path.parent.mkdir()
    path.write_text("/bin/sh\n/bin/bash\n", encoding="utf-8")
    return path


@pytest.fixture
def settings_file(tmp_path: Path, shells_file: Path) -> Path:
    """A bootstrap.yml that keeps every path inside tmp_path."""
    path = tmp_path / "bootstrap.yml"
    path.write_text(
        yaml.safe_dump({
            "repo_url": "https://example.com/dotfiles.git",
            "shells_file": str(shells_file),
        }),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def ubuntu(home: Path) -> SimulatedHost:
    return SimulatedHost.ubuntu(home)


@pytest.fixture
def macos(home: Path) -> SimulatedHost:
    return SimulatedHost.macos(home)


@pytest.fixture
def arch(home: Path) -> SimulatedHost:
    return SimulatedHost.arch(home)

