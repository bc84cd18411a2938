"""
Repository phases — check out the dotfiles and hand off to their setup.
"""

from __future__ import annotations

from dotstrap.core.engine.context import PhaseContext
from dotstrap.core.models.run import PhaseResult


def clone(ctx: PhaseContext) -> PhaseResult:
    """Clone the dotfiles repository, or fast-forward an existing checkout."""
    settings = ctx.settings
    target = ctx.dotfiles_path()

    if target.is_dir():
        receipt = ctx.git_pull(target)
        if receipt.failed:
            ctx.warn(f"Could not fast-forward {target}; continuing with existing checkout")
        return ctx.skip(f"Dotfiles already present at {target}", path=str(target))

    receipt = ctx.git_clone(settings.repo_url, target, branch=settings.repo_branch)
    if receipt.skipped:
        return ctx.done(f"Would clone {settings.repo_url} into {target}", path=str(target))
    ctx.require(receipt, f"Could not clone {settings.repo_url}")
    return ctx.done(f"Cloned {settings.repo_url} ({settings.repo_branch}) into {target}", path=str(target))


def setup(ctx: PhaseContext) -> PhaseResult:
    """Invoke the dotfiles' own setup script.

    The script is idempotent and understands ``--dry-run`` itself, so it
    runs in dry-run mode too with the flag forwarded. A nonzero exit is
    a warning, never fatal.
    """
    script = ctx.dotfiles_path(ctx.settings.setup_script)
    if not script.is_file():
        ctx.warn(f"{script} not found, skipping setup")
        return ctx.skip(f"No setup script at {script}")

    command = ["bash", str(script)]
    if ctx.dry_run:
        command.append("--dry-run")

    receipt = ctx.run(command, kind="invoke", cwd=ctx.dotfiles_path())
    if receipt.failed:
        return ctx.fail(f"Setup script exited with an error: {receipt.error}", command=ctx.last_command)
    # The script owns its own idempotence; nothing here counts as an install
    return ctx.done(f"Nothing to install; ran {script.name}{' --dry-run' if ctx.dry_run else ''}")
