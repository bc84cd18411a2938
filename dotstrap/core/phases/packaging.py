"""
Package-manager operations shared by the package phases.

Each manager gets a probe (is this package installed?), an install
command, and an index refresh. ``ensure_packages`` implements the
check-then-act rule with partial-failure containment: missing packages
go in one batch, and if the batch fails each one is retried alone so a
single bad name cannot block the rest.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from dotstrap.core.engine.context import PhaseContext
from dotstrap.core.models.platform import PackageManager
from dotstrap.core.models.run import PhaseResult


@dataclass
class PackageOutcome:
    """What ``ensure_packages`` did."""

    requested: list[str] = field(default_factory=list)
    present: list[str] = field(default_factory=list)
    installed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    planned: list[str] = field(default_factory=list)

    @property
    def missing(self) -> list[str]:
        return [p for p in self.requested if p not in self.present]

    @property
    def all_failed(self) -> bool:
        return bool(self.failed) and not self.installed

    def to_dict(self) -> dict:
        return {
            "requested": len(self.requested),
            "present": len(self.present),
            "installed": self.installed,
            "failed": self.failed,
            "planned": self.planned,
        }


# ── Per-manager commands ────────────────────────────────────────────

def install_command(manager: PackageManager, packages: list[str]) -> list[str]:
    if manager is PackageManager.BREW:
        return ["brew", "install", *packages]
    if manager is PackageManager.APT:
        return ["apt-get", "install", "-y", *packages]
    return ["pacman", "-S", "--needed", "--noconfirm", *packages]


def refresh_command(manager: PackageManager) -> list[str] | None:
    if manager is PackageManager.APT:
        return ["apt-get", "update"]
    if manager is PackageManager.PACMAN:
        # Arch does not support partial upgrades, so sync and upgrade together
        return ["pacman", "-Syu", "--noconfirm"]
    return None


def needs_sudo(manager: PackageManager) -> bool:
    # Homebrew refuses to run as root
    return manager is not PackageManager.BREW


def is_installed(ctx: PhaseContext, manager: PackageManager, package: str) -> bool:
    """Probe the package database for one package."""
    if manager is PackageManager.BREW:
        receipt = ctx.probe(["brew", "list", "--versions", package])
        return receipt.ok and bool(receipt.output.strip())
    if manager is PackageManager.APT:
        receipt = ctx.probe(["dpkg-query", "-W", "-f=${Status}", package])
        return receipt.ok and "install ok installed" in receipt.output
    receipt = ctx.probe(["pacman", "-Qi", package])
    return receipt.ok


# ── Check-then-act ──────────────────────────────────────────────────

def ensure_packages(
    ctx: PhaseContext,
    packages: list[str],
    manager: PackageManager | None = None,
    refresh_index: bool = False,
) -> PackageOutcome:
    """Install whichever of ``packages`` are missing.

    Args:
        ctx: Phase context (actions are recorded there).
        packages: Package names, in the order they should be installed.
        manager: Defaults to the profile's package manager.
        refresh_index: Run ``apt-get update`` / ``pacman -Syu`` first, but
            only when something is actually missing and the index has
            not already been refreshed during this run.

    Returns:
        PackageOutcome. Failed packages are also added to the phase's
        warnings.
    """
    manager = manager or ctx.profile.package_manager
    outcome = PackageOutcome(requested=list(packages))

    for package in packages:
        if is_installed(ctx, manager, package):
            outcome.present.append(package)

    missing = outcome.missing
    if not missing:
        ctx.info("All %d packages already installed", len(packages))
        return outcome

    sudo = needs_sudo(manager)

    if refresh_index and not ctx.run_ctx.index_refreshed:
        command = refresh_command(manager)
        if command:
            receipt = ctx.run(command, kind="refresh", sudo=sudo)
            if receipt.failed:
                ctx.warn(f"Package index refresh failed: {receipt.error}")
            elif receipt.ok:
                ctx.run_ctx.index_refreshed = True

    receipt = ctx.run(install_command(manager, missing), sudo=sudo)
    if receipt.skipped:
        outcome.planned = missing
        return outcome
    if receipt.ok:
        outcome.installed = missing
        return outcome

    if len(missing) == 1:
        outcome.failed = missing
        ctx.warn(f"Failed to install {missing[0]}: {receipt.error}")
        return outcome

    # Batch failed: isolate the bad package(s)
    ctx.info("Batch install failed, retrying %d packages individually", len(missing))
    for package in missing:
        single = ctx.run(install_command(manager, [package]), sudo=sudo)
        if single.ok:
            outcome.installed.append(package)
        else:
            outcome.failed.append(package)
            ctx.warn(f"Failed to install {package}: {single.error}")

    return outcome


def package_result(ctx: PhaseContext, outcome: PackageOutcome, label: str) -> PhaseResult:
    """Turn a PackageOutcome into the phase's result."""
    details = outcome.to_dict()
    if not outcome.missing:
        return ctx.skip(f"All {label} already installed", **details)
    if outcome.planned:
        return ctx.done(f"Would install {len(outcome.planned)} {label}: {' '.join(outcome.planned)}", **details)
    if outcome.all_failed:
        return ctx.fail(
            f"All {len(outcome.failed)} {label} failed to install",
            command=ctx.last_command,
            **details,
        )
    message = f"Installed {len(outcome.installed)} {label}"
    if outcome.failed:
        message += f" ({len(outcome.failed)} failed: {' '.join(outcome.failed)})"
    return ctx.done(message, **details)
