"""Engine — phase context and the sequential phase runner."""

from dotstrap.core.engine.context import PhaseContext, RunContext
from dotstrap.core.engine.runner import Phase, run_all, run_phase

__all__ = ["Phase", "PhaseContext", "RunContext", "run_all", "run_phase"]
