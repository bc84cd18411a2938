"""
Run models — invocation options, per-phase outcomes, and the run report.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RunConfig(BaseModel):
    """User-supplied invocation options. Immutable for the whole run."""

    model_config = ConfigDict(frozen=True)

    dry_run: bool = False
    skip_full_install: bool = False


class PhaseStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    OK = "ok"
    SKIPPED = "skipped"
    FAILED = "failed"


class PhaseResult(BaseModel):
    """Outcome of running one phase.

    Used for logging and the end-of-run summary only; a failed phase
    is never retried automatically.
    """

    name: str
    ordinal: int = 0
    status: PhaseStatus = PhaseStatus.PENDING
    message: str = ""
    fatal: bool = False
    warnings: list[str] = Field(default_factory=list)
    actions: list[str] = Field(default_factory=list)
    failed_command: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status is PhaseStatus.OK

    @property
    def skipped(self) -> bool:
        return self.status is PhaseStatus.SKIPPED

    @property
    def failed(self) -> bool:
        return self.status is PhaseStatus.FAILED


@dataclass
class RunReport:
    """Result of running the phase list."""

    dry_run: bool = False
    results: list[PhaseResult] = field(default_factory=list)
    halted_at: str | None = None

    @property
    def halted(self) -> bool:
        return self.halted_at is not None

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.skipped)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.failed)

    @property
    def fatal_failures(self) -> int:
        return sum(1 for r in self.results if r.failed and r.fatal)

    @property
    def warning_count(self) -> int:
        return sum(len(r.warnings) for r in self.results)

    @property
    def exit_code(self) -> int:
        return 1 if self.halted else 0

    def get(self, name: str) -> PhaseResult | None:
        for result in self.results:
            if result.name == name:
                return result
        return None

    def to_dict(self) -> dict:
        return {
            "dry_run": self.dry_run,
            "halted_at": self.halted_at,
            "exit_code": self.exit_code,
            "succeeded": self.succeeded,
            "skipped": self.skipped,
            "failed": self.failed,
            "fatal_failures": self.fatal_failures,
            "warnings": self.warning_count,
            "phases": [r.model_dump(mode="json") for r in self.results],
        }
