"""
PlatformProfile — the detected OS / distro / package-manager combination.

Computed once at start by ``core.detection.platform.detect`` and passed
read-only into every phase.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class OSName(StrEnum):
    MACOS = "macos"
    LINUX = "linux"


class Distro(StrEnum):
    MACOS = "macos"
    UBUNTU = "ubuntu"
    ARCH = "arch"
    CACHYOS = "cachyos"


class PackageManager(StrEnum):
    BREW = "brew"
    APT = "apt"
    PACMAN = "pacman"


class PlatformProfile(BaseModel):
    """Immutable description of the host being bootstrapped."""

    model_config = ConfigDict(frozen=True)

    os: OSName
    distro: Distro
    package_manager: PackageManager
    arch_prefix: str                # /opt/homebrew, /usr/local, or /usr
    machine: str = ""               # arm64, x86_64, aarch64
    distro_id: str = ""             # raw os-release ID
    distro_name: str = ""           # os-release PRETTY_NAME

    @property
    def is_macos(self) -> bool:
        return self.os is OSName.MACOS

    @property
    def is_linux(self) -> bool:
        return self.os is OSName.LINUX

    @property
    def is_apple_silicon(self) -> bool:
        return self.is_macos and self.machine == "arm64"

    def to_dict(self) -> dict[str, str]:
        return {
            "os": self.os.value,
            "distro": self.distro.value,
            "package_manager": self.package_manager.value,
            "arch_prefix": self.arch_prefix,
            "machine": self.machine,
            "distro_id": self.distro_id,
            "distro_name": self.distro_name,
        }
