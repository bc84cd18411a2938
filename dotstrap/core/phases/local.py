"""
Local customization — the user's ``~/.bootstrap.local`` extension point.

The script is run with ``bash`` (never sourced into this process) and
learns about the run through environment variables:

    DOTSTRAP_OS               macos | linux
    DOTSTRAP_DISTRO           macos | ubuntu | arch | cachyos
    DOTSTRAP_PACKAGE_MANAGER  brew | apt | pacman
    DOTSTRAP_PREFIX           /opt/homebrew, /usr/local or /usr
    DOTSTRAP_DRY_RUN          1 or 0

It may do anything, and should be idempotent itself. Failures are
warnings.
"""

from __future__ import annotations

from dotstrap.core.engine.context import PhaseContext
from dotstrap.core.models.run import PhaseResult


def script_environment(ctx: PhaseContext) -> dict[str, str]:
    profile = ctx.profile
    return {
        "DOTSTRAP_OS": profile.os.value,
        "DOTSTRAP_DISTRO": profile.distro.value,
        "DOTSTRAP_PACKAGE_MANAGER": profile.package_manager.value,
        "DOTSTRAP_PREFIX": profile.arch_prefix,
        "DOTSTRAP_DRY_RUN": "1" if ctx.dry_run else "0",
    }


def local_customization(ctx: PhaseContext) -> PhaseResult:
    script = ctx.path(ctx.settings.local_script)
    if not script.is_file():
        return ctx.skip(f"No local customization at {script}")

    receipt = ctx.run(["bash", str(script)], kind="refresh", env=script_environment(ctx), cwd=ctx.home)
    if receipt.skipped:
        return ctx.done(f"Would run {script}")
    if receipt.failed:
        return ctx.fail(f"{script.name} failed: {receipt.error}", command=ctx.last_command)
    return ctx.done(f"Nothing to install; ran {script}")
