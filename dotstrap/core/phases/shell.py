"""
Default shell — make zsh the login shell and install its plugin manager.

Four independent checks, each a no-op when already satisfied:
    zsh listed in /etc/shells
    zsh is the user's login shell
    Zap plugin manager present
    ~/.local/bin on PATH via ~/.profile
"""

from __future__ import annotations

import shlex
from pathlib import Path

from dotstrap.core.engine.context import PhaseContext
from dotstrap.core.models.run import PhaseResult


def default_shell(ctx: PhaseContext) -> PhaseResult:
    failures = 0

    zsh = zsh_path(ctx)
    if zsh is None:
        ctx.warn("zsh not found on PATH — cannot make it the default shell")
        failures += 1
    else:
        failures += _register_shell(ctx, zsh)
        failures += _set_login_shell(ctx, zsh)

    failures += _install_zap(ctx)
    failures += _profile_path(ctx)

    if failures and ctx.installs == 0:
        return ctx.fail(f"{failures} shell configuration steps failed", command=ctx.last_command)
    if ctx.installs or any(a.startswith("would run") for a in ctx.actions):
        return ctx.done("Default shell configured", zsh=zsh)
    return ctx.done("Default shell already configured", zsh=zsh)


def zsh_path(ctx: PhaseContext) -> str | None:
    fallback = str(Path(ctx.profile.arch_prefix) / "bin" / "zsh")
    if ctx.profile.is_macos:
        return fallback
    found = ctx.command_path("zsh")
    if found is None and ctx.dry_run:
        # Not installed yet; minimal packages would have put it here
        return fallback
    return found


# ── /etc/shells ─────────────────────────────────────────────────────

def _registered_shells(path: Path) -> list[str]:
    try:
        return [line.strip() for line in path.read_text(encoding="utf-8").splitlines()]
    except OSError:
        return []


def _register_shell(ctx: PhaseContext, zsh: str) -> int:
    shells_file = ctx.path(ctx.settings.shells_file)
    if zsh in _registered_shells(shells_file):
        ctx.info("%s already in %s", zsh, shells_file)
        return 0

    receipt = ctx.run(
        ["tee", "-a", str(shells_file)],
        sudo=True,
        input=f"{zsh}\n",
        capture=True,
    )
    if receipt.failed:
        ctx.warn(f"Could not add {zsh} to {shells_file}: {receipt.error}")
        return 1
    return 0


# ── Login shell ─────────────────────────────────────────────────────

def login_shell(ctx: PhaseContext) -> str | None:
    """The user's login shell from the account database, if readable."""
    user = ctx.run_ctx.environ.get("USER")
    if not user:
        return None

    if ctx.profile.is_macos:
        receipt = ctx.probe(["dscl", ".", "-read", f"/Users/{user}", "UserShell"])
        if receipt.ok and ":" in receipt.output:
            return receipt.output.split(":", 1)[1].strip()
        return None

    receipt = ctx.probe(["getent", "passwd", user])
    fields = receipt.output.strip().split(":") if receipt.ok else []
    return fields[6] if len(fields) >= 7 else None


def _set_login_shell(ctx: PhaseContext, zsh: str) -> int:
    # $SHELL only changes after re-login, so also ask the account database
    if ctx.run_ctx.environ.get("SHELL") == zsh or login_shell(ctx) == zsh:
        ctx.info("zsh already the default shell")
        return 0

    receipt = ctx.run(["chsh", "-s", zsh])
    if receipt.failed:
        ctx.warn(f"Could not change default shell to {zsh}: {receipt.error}")
        return 1
    return 0


# ── Zap ─────────────────────────────────────────────────────────────

def _install_zap(ctx: PhaseContext) -> int:
    zap = ctx.settings.zap
    zap_dir = ctx.path(zap.dir)
    if zap_dir.is_dir():
        ctx.info("Zap already installed")
        return 0

    script = f"zsh <(curl -fsSL {shlex.quote(zap.installer_url)}) --branch {shlex.quote(zap.branch)} --keep"
    receipt = ctx.run(["zsh", "-c", script])
    if receipt.failed:
        ctx.warn(f"Could not install Zap: {receipt.error}")
        return 1
    return 0


# ── ~/.profile ──────────────────────────────────────────────────────

def _profile_path(ctx: PhaseContext) -> int:
    failures = 0

    local_bin = ctx.home / ".local" / "bin"
    if not local_bin.is_dir():
        if ctx.mkdir(local_bin).failed:
            ctx.warn(f"Could not create {local_bin}")
            failures += 1

    profile = ctx.path(ctx.settings.profile_file)
    line = ctx.settings.profile_path_line
    try:
        present = line in profile.read_text(encoding="utf-8").splitlines()
    except OSError:
        present = False
    if present:
        return failures

    receipt = ctx.append_line(profile, line)
    if receipt.failed:
        ctx.warn(f"Could not update {profile}: {receipt.error}")
        failures += 1
    return failures
