"""
Summary — tally the run and list what is left for the user to do.
"""

from __future__ import annotations

from dotstrap.core.engine.context import PhaseContext
from dotstrap.core.models.run import PhaseResult


def summary(ctx: PhaseContext) -> PhaseResult:
    results = ctx.run_ctx.results
    failed = [r.name for r in results if r.failed]
    fatal = [r.name for r in results if r.failed and r.fatal]
    warning_count = sum(len(r.warnings) for r in results)
    steps = list(ctx.settings.manual_steps)

    ctx.info("Remaining manual steps:")
    for step in steps:
        ctx.info("  -> %s", step)

    verb = "Dry run complete" if ctx.dry_run else "Bootstrap complete"
    return ctx.ok(
        f"{verb}: {len(fatal)} fatal failures, {len(failed)} failed phases, {warning_count} warnings",
        manual_steps=steps,
        failed_phases=failed,
        fatal_failures=len(fatal),
        warning_count=warning_count,
    )
