"""
System phases — everything before the dotfiles checkout.

    preflight          report the detected profile
    build_tools        Xcode CLI tools / build-essential / base-devel   (fatal)
    rosetta            Rosetta 2 on Apple Silicon
    package_manager    Homebrew install, or apt/pacman presence       (fatal)
    minimal_packages   the small set later phases depend on
"""

from __future__ import annotations

import shlex
from pathlib import Path

from dotstrap.core.engine.context import PhaseContext
from dotstrap.core.errors import PhaseFailed
from dotstrap.core.models.platform import PackageManager
from dotstrap.core.models.run import PhaseResult
from dotstrap.core.phases.packaging import ensure_packages, package_result

_ROSETTA_PKG = "com.apple.pkg.RosettaUpdateAuto"

# Binary that must exist for each Linux package manager
_PM_BINARIES = {
    PackageManager.APT: "apt-get",
    PackageManager.PACMAN: "pacman",
}


def preflight(ctx: PhaseContext) -> PhaseResult:
    profile = ctx.profile
    message = f"{profile.distro_name or profile.distro.value} ({profile.machine or 'unknown arch'}), " \
              f"using {profile.package_manager.value}"
    if ctx.dry_run:
        ctx.info("DRY RUN MODE — no changes will be made")
    return ctx.ok(message, **profile.to_dict())


# ── Build tools ─────────────────────────────────────────────────────

def build_tools(ctx: PhaseContext) -> PhaseResult:
    if ctx.profile.is_macos:
        return _xcode_cli_tools(ctx)

    packages = ctx.settings.build_packages.get(ctx.profile.package_manager.value, [])
    if not packages:
        return ctx.skip(f"No build packages configured for {ctx.profile.package_manager.value}")

    outcome = ensure_packages(ctx, packages, refresh_index=True)
    if outcome.failed:
        raise PhaseFailed(
            f"Could not install build tools: {' '.join(outcome.failed)}",
            command=ctx.last_command,
        )
    return package_result(ctx, outcome, "build tools")


def _xcode_cli_tools(ctx: PhaseContext) -> PhaseResult:
    if ctx.probe(["xcode-select", "-p"]).ok:
        return ctx.skip("Xcode CLI tools already installed")

    receipt = ctx.run(["xcode-select", "--install"])
    if receipt.skipped:
        return ctx.done("Would install Xcode CLI tools")
    ctx.require(receipt, "Xcode CLI tools installation could not be started")

    # The installer is a GUI dialog; wait for the user to finish it
    ctx.info("Waiting for Xcode CLI tools installation to complete...")
    while not ctx.probe(["xcode-select", "-p"]).ok:
        ctx.run_ctx.sleep(ctx.settings.xcode_poll_seconds)

    return ctx.done("Xcode CLI tools installed")


# ── Rosetta ─────────────────────────────────────────────────────────

def rosetta(ctx: PhaseContext) -> PhaseResult:
    if not ctx.profile.is_macos:
        return ctx.skip("Not macOS — skipping Rosetta")
    if not ctx.profile.is_apple_silicon:
        return ctx.skip("Not Apple Silicon — skipping Rosetta")

    if ctx.probe(["pkgutil", f"--pkg-info={_ROSETTA_PKG}"]).ok:
        return ctx.skip("Rosetta 2 already installed")

    receipt = ctx.run(["softwareupdate", "--install-rosetta", "--agree-to-license"])
    if receipt.skipped:
        return ctx.done("Would install Rosetta 2")
    ctx.require(receipt, "Rosetta 2 installation failed")
    return ctx.done("Rosetta 2 installed")


# ── Package manager ─────────────────────────────────────────────────

def package_manager(ctx: PhaseContext) -> PhaseResult:
    manager = ctx.profile.package_manager
    if manager is PackageManager.BREW:
        return _homebrew(ctx)

    binary = _PM_BINARIES[manager]
    location = ctx.command_path(binary)
    if location is None:
        raise PhaseFailed(
            f"{binary} not found on PATH and cannot be installed automatically",
            command=f"command -v {binary}",
        )
    return ctx.skip(f"{manager.value} available at {location}")


def _homebrew(ctx: PhaseContext) -> PhaseResult:
    bin_dir = Path(ctx.profile.arch_prefix) / "bin"
    brew = bin_dir / "brew"

    if ctx.command_exists(str(brew)):
        message = "Homebrew already installed"
    else:
        url = ctx.settings.homebrew_install_url
        receipt = ctx.run(
            ["/bin/bash", "-c", f'/bin/bash -c "$(curl -fsSL {shlex.quote(url)})"'],
            env={"NONINTERACTIVE": "1"},
        )
        if receipt.skipped:
            message = "Would install Homebrew"
        else:
            ctx.require(receipt, "Homebrew installation failed")
            message = f"Homebrew installed at {brew}"

    # Make brew (and everything it installs) visible to later phases
    ctx.run_ctx.add_path(bin_dir)
    ctx.run_ctx.env_overrides.setdefault("HOMEBREW_PREFIX", ctx.profile.arch_prefix)
    return ctx.done(message)


# ── Minimal packages ────────────────────────────────────────────────

def minimal_packages(ctx: PhaseContext) -> PhaseResult:
    manager = ctx.profile.package_manager
    packages = ctx.settings.minimal_packages.get(manager.value, [])
    if not packages:
        return ctx.skip(f"No minimal packages configured for {manager.value}")

    outcome = ensure_packages(ctx, packages, refresh_index=manager is not PackageManager.BREW)
    return package_result(ctx, outcome, "minimal packages")
