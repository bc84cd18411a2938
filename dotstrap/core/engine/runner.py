"""
Phase runner — the central orchestration loop.

Runs an ordered list of phases against one RunContext. Each phase
returns a PhaseResult; a phase that raises PhaseFailed is recorded as
failed with the offending command attached.

    fatal phase fails      → record, stop, exit non-zero
    non-fatal phase fails  → record as a warning, continue
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from dotstrap.core.engine.context import PhaseContext, RunContext
from dotstrap.core.errors import PhaseFailed
from dotstrap.core.models.run import PhaseResult, PhaseStatus, RunReport

logger = logging.getLogger(__name__)


PhaseFn = Callable[[PhaseContext], PhaseResult]

# (event, phase, result); result is None for "started"
Listener = Callable[[str, "Phase", PhaseResult | None], None]


@dataclass(frozen=True)
class Phase:
    """One named, ordered step of the bootstrap."""

    name: str
    ordinal: int
    title: str
    run: PhaseFn
    fatal: bool = False
    mutating: bool = True


def run_phase(phase: Phase, run_ctx: RunContext) -> PhaseResult:
    """Run a single phase and normalize its outcome.

    Never raises: PhaseFailed and unexpected errors both become a
    failed result.
    """
    ctx = PhaseContext(run_ctx, phase)
    try:
        result = phase.run(ctx)
    except PhaseFailed as e:
        result = ctx.fail(e.message, command=e.command)
    except Exception as e:
        logger.exception("Phase %s raised unexpectedly", phase.name)
        result = ctx.fail(f"Unexpected error: {e}")

    # In dry-run nothing mutating can have succeeded
    if run_ctx.config.dry_run and phase.mutating and result.ok:
        result = result.model_copy(update={"status": PhaseStatus.SKIPPED})

    return result


def run_all(
    phases: list[Phase],
    run_ctx: RunContext,
    listener: Listener | None = None,
) -> RunReport:
    """Run phases in order, halting on the first fatal failure.

    Args:
        phases: Ordered phase list (see ``dotstrap.core.phases``).
        run_ctx: Shared run state.
        listener: Optional progress callback for the CLI.

    Returns:
        RunReport with one result per phase that ran.
    """
    report = RunReport(dry_run=run_ctx.config.dry_run)

    for phase in phases:
        if listener:
            listener("started", phase, None)

        result = run_phase(phase, run_ctx)
        report.results.append(result)
        run_ctx.results.append(result)

        status_marker = "✓" if result.ok else "✗" if result.failed else "⊘"
        logger.info(
            "%s phase %d %s → %s %s",
            status_marker,
            phase.ordinal,
            phase.name,
            result.status,
            result.message,
        )

        if listener:
            listener("finished", phase, result)

        if result.failed:
            if phase.fatal:
                logger.error("Fatal phase %s failed, halting", phase.name)
                report.halted_at = phase.name
                break
            logger.info("Phase %s failed, continuing", phase.name)

    return report
