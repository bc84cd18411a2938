"""
Inspection use cases — read-only views for ``detect`` and ``manifest``.

Nothing here runs a command or writes a file.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from dotstrap.core.config.loader import find_settings_file, load_settings
from dotstrap.core.config.manifests import read_line_manifest, read_tool_versions
from dotstrap.core.config.settings import BootstrapSettings, expand
from dotstrap.core.detection.platform import OS_RELEASE_PATH, detect
from dotstrap.core.errors import ConfigError, UnsupportedPlatformError
from dotstrap.core.models.manifest import ToolVersionSpec
from dotstrap.core.models.platform import PlatformProfile

logger = logging.getLogger(__name__)


# ── detect ──────────────────────────────────────────────────────────

@dataclass
class DetectResult:
    """Result of platform detection."""

    profile: PlatformProfile | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        assert self.profile is not None
        return self.profile.to_dict()


def run_detect(
    system: str | None = None,
    machine: str | None = None,
    os_release: Path = OS_RELEASE_PATH,
) -> DetectResult:
    """Detect the host platform without raising."""
    result = DetectResult()
    try:
        result.profile = detect(system=system, machine=machine, os_release=os_release)
    except UnsupportedPlatformError as e:
        result.error = str(e)
    return result


# ── manifest ────────────────────────────────────────────────────────

@dataclass
class ManifestResult:
    """Parsed contents of the manifests the runtime phases consume."""

    tool_versions_path: Path | None = None
    tool_versions: list[ToolVersionSpec] | None = None
    line_manifests: dict[str, list[str] | None] = field(default_factory=dict)
    settings: BootstrapSettings | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {
            "tool_versions": {
                "path": str(self.tool_versions_path),
                "found": self.tool_versions is not None,
                "entries": [
                    {"tool": s.tool_name, "version": s.requested_version, "line": s.line}
                    for s in self.tool_versions or []
                ],
            },
            "manifests": {
                name: {"found": items is not None, "entries": items or []}
                for name, items in self.line_manifests.items()
            },
        }


def run_manifest(
    config_path: Path | None = None,
    home: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> ManifestResult:
    """Read ~/.tool-versions and the secondary manifests."""
    result = ManifestResult()
    home = home or Path.home()

    try:
        path = find_settings_file(config_path, environ=environ, home=home)
        result.settings = load_settings(path)
    except ConfigError as e:
        result.error = str(e)
        return result

    settings = result.settings
    result.tool_versions_path = expand(settings.tool_versions, home)
    result.tool_versions = read_tool_versions(result.tool_versions_path)

    for name, value in (
        ("default_gems", settings.default_gems),
        ("default_npm_packages", settings.default_npm_packages),
    ):
        result.line_manifests[name] = read_line_manifest(expand(value, home))

    return result
