"""
Manifest parsers — the plain-text files the phases consume.

    .tool-versions      ``tool v1 [v2 ...]`` per line
    packages/*.txt      whitespace-separated package tokens
    .default-gems etc.  one package name per line

All formats ignore blank lines and ``#`` comments. Declaration order is
preserved everywhere; nothing is sorted or de-duplicated beyond exact
repeats.
"""

from __future__ import annotations

import logging
from pathlib import Path

from dotstrap.core.models.manifest import ToolVersionSpec

logger = logging.getLogger(__name__)


def _strip_comment(line: str) -> str:
    return line.split("#", 1)[0].strip()


def parse_tool_versions(text: str) -> list[ToolVersionSpec]:
    """Parse a version manifest into tool/version pairs.

    A line declaring several versions yields one spec per version, in
    the order written. Lines with a tool but no version are ignored.
    """
    specs: list[ToolVersionSpec] = []
    seen: set[tuple[str, str]] = set()
    for lineno, raw in enumerate(text.splitlines(), start=1):
        tokens = _strip_comment(raw).split()
        if not tokens:
            continue
        tool, versions = tokens[0], tokens[1:]
        if not versions:
            logger.warning("No version found for %s (line %d)", tool, lineno)
            continue
        for version in versions:
            if (tool, version) in seen:
                continue
            seen.add((tool, version))
            specs.append(ToolVersionSpec(tool_name=tool, requested_version=version, line=lineno))
    return specs


def parse_package_list(text: str) -> list[str]:
    """Parse a package list file into package names (any whitespace separates)."""
    packages: list[str] = []
    for raw in text.splitlines():
        for token in _strip_comment(raw).split():
            if token not in packages:
                packages.append(token)
    return packages


def parse_line_manifest(text: str) -> list[str]:
    """Parse a one-name-per-line manifest (.default-gems, .default-npm-packages)."""
    names: list[str] = []
    for raw in text.splitlines():
        name = _strip_comment(raw)
        if name and name not in names:
            names.append(name)
    return names


def read_tool_versions(path: Path) -> list[ToolVersionSpec] | None:
    """Read the version manifest, or None if it doesn't exist."""
    if not path.is_file():
        return None
    return parse_tool_versions(path.read_text(encoding="utf-8"))


def read_package_list(path: Path) -> list[str] | None:
    if not path.is_file():
        return None
    return parse_package_list(path.read_text(encoding="utf-8"))


def read_line_manifest(path: Path) -> list[str] | None:
    if not path.is_file():
        return None
    return parse_line_manifest(path.read_text(encoding="utf-8"))
