"""
Secondary packages — global gems and npm packages.

Both come from one-name-per-line manifests in the home directory
(~/.default-gems, ~/.default-npm-packages). Every package is handled on
its own so one failure never blocks the rest.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from dotstrap.core.config.manifests import read_line_manifest
from dotstrap.core.engine.context import PhaseContext
from dotstrap.core.models.action import Receipt
from dotstrap.core.models.run import PhaseResult


@dataclass
class _Tally:
    installed: list[str] = field(default_factory=list)
    planned: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    def record(self, ctx: PhaseContext, label: str, receipt: Receipt) -> None:
        if receipt.skipped:
            self.planned.append(label)
        elif receipt.ok:
            self.installed.append(label)
        else:
            self.failed.append(label)
            ctx.warn(f"Failed to install {label}: {receipt.error}")


def secondary_packages(ctx: PhaseContext) -> PhaseResult:
    tally = _Tally()
    _gems(ctx, tally)
    _npm_packages(ctx, tally)

    details = {"installed": tally.installed, "planned": tally.planned, "failed": tally.failed}
    if tally.failed and not tally.installed and not tally.planned:
        return ctx.fail(f"All {len(tally.failed)} package installs failed", command=ctx.last_command, **details)
    if tally.planned:
        return ctx.done(f"Would install {len(tally.planned)} packages: {' '.join(tally.planned)}", **details)
    if tally.installed:
        message = f"Installed {len(tally.installed)} packages: {' '.join(tally.installed)}"
        if tally.failed:
            message += f" ({len(tally.failed)} failed)"
        return ctx.done(message, **details)
    return ctx.done("Gems and npm packages already installed", **details)


def _gems(ctx: PhaseContext, tally: _Tally) -> None:
    manifest = ctx.path(ctx.settings.default_gems)
    gems = read_line_manifest(manifest)
    if gems is None:
        ctx.warn(f"{manifest} not found — skipping gem installation")
        return

    for gem in gems:
        if ctx.probe(["gem", "list", f"^{gem}$", "--installed"]).ok:
            receipt = ctx.run(["gem", "update", gem, "--no-document"], kind="refresh")
            if receipt.failed:
                ctx.warn(f"Failed to update gem {gem}: {receipt.error}")
            continue
        receipt = ctx.run(["gem", "install", gem, "--no-document"])
        tally.record(ctx, f"gem:{gem}", receipt)


def _npm_packages(ctx: PhaseContext, tally: _Tally) -> None:
    manifest = ctx.path(ctx.settings.default_npm_packages)
    packages = read_line_manifest(manifest)
    if packages is None:
        ctx.warn(f"{manifest} not found — skipping npm installation")
        return

    for package in packages:
        if ctx.probe(["npm", "ls", "-g", package, "--depth=0"]).ok:
            ctx.info("npm package %s already installed", package)
            continue
        receipt = ctx.run(["npm", "install", "-g", package])
        tally.record(ctx, f"npm:{package}", receipt)
