"""
Full package set — the long, optional bulk install.

macOS installs the Brewfile with ``brew bundle``. Linux installs the
distro's package list from the dotfiles checkout, then runs the
matching extra-tools script for things the package manager can't
provide (PPAs, AUR, release binaries).
"""

from __future__ import annotations

from dotstrap.core.config.manifests import read_package_list
from dotstrap.core.engine.context import PhaseContext
from dotstrap.core.models.platform import PackageManager
from dotstrap.core.models.run import PhaseResult
from dotstrap.core.phases.packaging import ensure_packages, package_result


def full_install(ctx: PhaseContext) -> PhaseResult:
    if ctx.config.skip_full_install:
        return ctx.skip("Skipped (--skip-full-install)")

    if ctx.profile.package_manager is PackageManager.BREW:
        return _brew_bundle(ctx)
    return _package_list(ctx)


def _brew_bundle(ctx: PhaseContext) -> PhaseResult:
    brewfile = ctx.path(ctx.settings.brewfile)
    if not brewfile.is_file():
        ctx.warn(f"{brewfile} not found — skipping brew bundle")
        return ctx.skip(f"No Brewfile at {brewfile}")

    if ctx.probe(["brew", "bundle", "check", "--file", str(brewfile)]).ok:
        return ctx.skip("Brewfile dependencies already satisfied")

    receipt = ctx.run(["brew", "bundle", "install", "--file", str(brewfile)])
    if receipt.skipped:
        return ctx.done(f"Would install packages from {brewfile}")
    if receipt.failed:
        return ctx.fail(f"brew bundle failed: {receipt.error}", command=ctx.last_command)
    return ctx.done(f"Installed packages from {brewfile}")


def _package_list(ctx: PhaseContext) -> PhaseResult:
    manager = ctx.profile.package_manager
    relative = ctx.settings.package_lists.get(manager.value)
    if not relative:
        return ctx.skip(f"No package list configured for {manager.value}")

    list_file = ctx.dotfiles_path(relative)
    packages = read_package_list(list_file)
    if packages is None:
        ctx.warn(f"{list_file} not found — skipping full package install")
        return ctx.skip(f"No package list at {list_file}")

    outcome = ensure_packages(ctx, packages, refresh_index=True)
    _extra_tools(ctx)
    return package_result(ctx, outcome, f"packages from {list_file.name}")


def _extra_tools(ctx: PhaseContext) -> None:
    relative = ctx.settings.extra_scripts.get(ctx.profile.package_manager.value)
    if not relative:
        return
    script = ctx.dotfiles_path(relative)
    if not script.is_file():
        ctx.info("No extra-tools script at %s", script)
        return

    # The script does its own "already installed" checks
    receipt = ctx.run(["bash", str(script)], kind="refresh", cwd=ctx.dotfiles_path())
    if receipt.failed:
        ctx.warn(f"{script.name} failed: {receipt.error}")
