"""
Platform detection — map the host to a PlatformProfile.

Read-only. The only inputs are ``platform.system()``,
``platform.machine()`` and ``/etc/os-release``; all three can be
injected so tests can simulate any host.
"""

from __future__ import annotations

import logging
import platform
from pathlib import Path

from dotstrap.core.errors import UnsupportedPlatformError
from dotstrap.core.models.platform import (
    Distro,
    OSName,
    PackageManager,
    PlatformProfile,
)

logger = logging.getLogger(__name__)

OS_RELEASE_PATH = Path("/etc/os-release")

# os-release ID → (distro, package manager)
_LINUX_DISTROS: dict[str, tuple[Distro, PackageManager]] = {
    "ubuntu": (Distro.UBUNTU, PackageManager.APT),
    "debian": (Distro.UBUNTU, PackageManager.APT),
    "cachyos": (Distro.CACHYOS, PackageManager.PACMAN),
    "arch": (Distro.ARCH, PackageManager.PACMAN),
}

_HOMEBREW_PREFIX_ARM = "/opt/homebrew"
_HOMEBREW_PREFIX_INTEL = "/usr/local"
_LINUX_PREFIX = "/usr"


def parse_os_release(text: str) -> dict[str, str]:
    """Parse os-release ``KEY=value`` lines into a dict.

    Values may be double- or single-quoted; comments and blank lines
    are ignored.
    """
    fields: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        fields[key.strip()] = value
    return fields


def read_os_release(path: Path = OS_RELEASE_PATH) -> dict[str, str]:
    """Read and parse the os-release file.

    Raises:
        UnsupportedPlatformError: If the file is missing or unreadable.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise UnsupportedPlatformError(
            f"{path} not found — cannot detect distribution"
        ) from e
    except OSError as e:
        raise UnsupportedPlatformError(f"Cannot read {path}: {e}") from e
    return parse_os_release(text)


def detect(
    system: str | None = None,
    machine: str | None = None,
    os_release: Path = OS_RELEASE_PATH,
) -> PlatformProfile:
    """Detect the host platform.

    Args:
        system: Override for ``platform.system()`` (e.g. ``"Darwin"``).
        machine: Override for ``platform.machine()`` (e.g. ``"arm64"``).
        os_release: Path to the Linux distro-id file.

    Returns:
        The detected PlatformProfile.

    Raises:
        UnsupportedPlatformError: Unknown OS, unknown distro id, or
            missing/unreadable os-release on Linux.
    """
    system = system if system is not None else platform.system()
    machine = machine if machine is not None else platform.machine()

    if system == "Darwin":
        prefix = _HOMEBREW_PREFIX_ARM if machine == "arm64" else _HOMEBREW_PREFIX_INTEL
        profile = PlatformProfile(
            os=OSName.MACOS,
            distro=Distro.MACOS,
            package_manager=PackageManager.BREW,
            arch_prefix=prefix,
            machine=machine,
            distro_id="macos",
            distro_name="macOS",
        )
        logger.info("macOS detected (%s) — HOMEBREW_PREFIX=%s", machine, prefix)
        return profile

    if system == "Linux":
        fields = read_os_release(os_release)
        distro_id = fields.get("ID", "").lower()
        match = _LINUX_DISTROS.get(distro_id)
        if match is None:
            raise UnsupportedPlatformError(
                f"Unsupported Linux distribution: {distro_id or '(no ID)'}"
            )
        distro, pm = match
        profile = PlatformProfile(
            os=OSName.LINUX,
            distro=distro,
            package_manager=pm,
            arch_prefix=_LINUX_PREFIX,
            machine=machine,
            distro_id=distro_id,
            distro_name=fields.get("PRETTY_NAME") or fields.get("NAME", distro_id),
        )
        logger.info("%s detected — using %s", profile.distro_name, pm.value)
        return profile

    raise UnsupportedPlatformError(f"Unsupported operating system: {system or '(unknown)'}")
