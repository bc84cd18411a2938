"""
Phase context — what a phase sees while it runs.

``RunContext`` is created once per invocation and carries the immutable
profile/config/settings plus the environment that accumulates across
phases (Homebrew's bin dir, asdf shims). ``PhaseContext`` wraps it for
one phase and records what that phase did: every command executed or,
in dry-run, every command it would have executed.

All side effects go through ``PhaseContext.run`` / ``git`` /
``append_line``, which dispatch Actions through the adapter registry.
That single path is what gives dry-run its guarantee.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from dotstrap.adapters.registry import AdapterRegistry
from dotstrap.adapters.shell.command import format_command
from dotstrap.core.config.settings import BootstrapSettings, dotfiles_path, expand
from dotstrap.core.errors import PhaseFailed
from dotstrap.core.models.action import Action, ActionKind, Receipt
from dotstrap.core.models.platform import PlatformProfile
from dotstrap.core.models.run import PhaseResult, PhaseStatus, RunConfig

if TYPE_CHECKING:
    from dotstrap.core.engine.runner import Phase

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    """Run-level state shared by every phase."""

    profile: PlatformProfile
    config: RunConfig
    settings: BootstrapSettings
    registry: AdapterRegistry
    home: Path = field(default_factory=Path.home)
    environ: Mapping[str, str] = field(default_factory=lambda: dict(os.environ))
    sleep: Callable[[float], None] = time.sleep
    cpu_count: Callable[[], int | None] = os.cpu_count

    # Accumulated by phases, applied to every later command
    env_overrides: dict[str, str] = field(default_factory=dict)
    path_prepend: list[str] = field(default_factory=list)
    index_refreshed: bool = False

    # Filled in by the runner as phases finish
    results: list[PhaseResult] = field(default_factory=list)

    def add_path(self, directory: str | Path) -> None:
        entry = str(directory)
        if entry not in self.path_prepend:
            self.path_prepend.insert(0, entry)


class PhaseContext:
    """Per-phase view of the run, with check-then-act helpers."""

    def __init__(self, run: RunContext, phase: Phase):
        self.run_ctx = run
        self.phase = phase
        self.actions: list[str] = []
        self.warnings: list[str] = []
        self.installs = 0
        self.last_command: str | None = None
        self._seq = 0

    # ── Shortcuts ───────────────────────────────────────────────

    @property
    def profile(self) -> PlatformProfile:
        return self.run_ctx.profile

    @property
    def config(self) -> RunConfig:
        return self.run_ctx.config

    @property
    def settings(self) -> BootstrapSettings:
        return self.run_ctx.settings

    @property
    def home(self) -> Path:
        return self.run_ctx.home

    @property
    def dry_run(self) -> bool:
        return self.run_ctx.config.dry_run

    def path(self, value: str) -> Path:
        """Expand a settings path against the run's home directory."""
        return expand(value, self.home)

    def dotfiles_path(self, relative: str = "") -> Path:
        """Resolve a path inside the dotfiles checkout."""
        if not relative:
            return self.path(self.settings.dotfiles_dir)
        return dotfiles_path(self.settings, self.home, relative)

    # ── Dispatch ────────────────────────────────────────────────

    def _dispatch(self, adapter: str, display: str, kind: ActionKind, params: dict[str, Any]) -> Receipt:
        self._seq += 1
        action = Action(
            id=f"{self.phase.name}:{self._seq}",
            name=display,
            adapter=adapter,
            kind=kind,
            params=params,
        )
        self.last_command = display
        receipt = self.run_ctx.registry.execute_action(
            action,
            dry_run=self.dry_run,
            env=self.run_ctx.env_overrides,
            path_prepend=self.run_ctx.path_prepend,
        )

        if kind == "probe":
            logger.debug("probe %s → %s", display, receipt.status)
            return receipt

        if receipt.skipped:
            self.actions.append(f"would run: {display}")
            logger.info("[dry-run] Would run: %s", display)
        elif receipt.ok:
            self.actions.append(f"ran: {display}")
            logger.info("Ran: %s", display)
            if kind == "install":
                self.installs += 1
        else:
            self.actions.append(f"failed: {display}")
            logger.info("Failed: %s (%s)", display, receipt.error)
        return receipt

    def run(
        self,
        command: list[str],
        *,
        kind: ActionKind = "install",
        sudo: bool = False,
        env: dict[str, str] | None = None,
        cwd: str | Path | None = None,
        input: str | None = None,
        capture: bool = False,
    ) -> Receipt:
        """Run a mutating command (skipped in dry-run)."""
        params: dict[str, Any] = {
            "command": list(command),
            "sudo": sudo,
            "capture": capture,
        }
        if env:
            params["env"] = dict(env)
        if cwd is not None:
            params["cwd"] = str(cwd)
        if input is not None:
            params["input"] = input
        return self._dispatch("shell", format_command(command, sudo=sudo), kind, params)

    def probe(self, command: list[str], env: dict[str, str] | None = None) -> Receipt:
        """Run a read-only command and capture its output (runs in dry-run too)."""
        params: dict[str, Any] = {"command": list(command), "capture": True}
        if env:
            params["env"] = dict(env)
        return self._dispatch("shell", format_command(command), "probe", params)

    def git_clone(self, url: str, dest: Path, branch: str = "", depth: int | None = None) -> Receipt:
        display = f"git clone{f' --depth {depth}' if depth else ''}" \
                  f"{f' --branch {branch}' if branch else ''} {url} {dest}"
        params: dict[str, Any] = {"operation": "clone", "url": url, "dest": str(dest)}
        if branch:
            params["branch"] = branch
        if depth:
            params["depth"] = depth
        return self._dispatch("git", display, "install", params)

    def git_pull(self, dest: Path) -> Receipt:
        return self._dispatch(
            "git", f"git -C {dest} pull --ff-only", "refresh",
            {"operation": "pull", "dest": str(dest)},
        )

    def append_line(self, path: Path, line: str) -> Receipt:
        return self._dispatch(
            "filesystem", f"append {line!r} to {path}", "install",
            {"operation": "append_line", "path": str(path), "line": line},
        )

    def mkdir(self, path: Path) -> Receipt:
        return self._dispatch(
            "filesystem", f"mkdir -p {path}", "install",
            {"operation": "mkdir", "path": str(path)},
        )

    # ── Probes ──────────────────────────────────────────────────

    def command_path(self, name: str) -> str | None:
        """Resolve a command on the run's PATH, or None."""
        receipt = self.probe(["sh", "-c", f"command -v {name}"])
        if not receipt.ok or not receipt.output:
            return None
        return receipt.output.splitlines()[0].strip()

    def command_exists(self, name: str) -> bool:
        return self.command_path(name) is not None

    # ── Outcome helpers ─────────────────────────────────────────

    def info(self, message: str, *args: Any) -> None:
        logger.info(message, *args)

    def warn(self, message: str) -> None:
        self.warnings.append(message)
        logger.info("Warning in %s: %s", self.phase.name, message)

    def require(self, receipt: Receipt, message: str) -> Receipt:
        """Raise PhaseFailed if ``receipt`` failed."""
        if receipt.failed:
            detail = f"{message}: {receipt.error}" if receipt.error else message
            raise PhaseFailed(detail, command=self.last_command)
        return receipt

    def _result(self, status: PhaseStatus, message: str, **kwargs: Any) -> PhaseResult:
        return PhaseResult(
            name=self.phase.name,
            ordinal=self.phase.ordinal,
            status=status,
            message=message,
            fatal=self.phase.fatal,
            warnings=list(self.warnings),
            actions=list(self.actions),
            **kwargs,
        )

    def done(self, message: str, **details: Any) -> PhaseResult:
        """Finish the phase: ``ok`` if anything was installed, else ``skipped``."""
        status = PhaseStatus.OK if self.installs > 0 else PhaseStatus.SKIPPED
        return self._result(status, message, details=details)

    def ok(self, message: str, **details: Any) -> PhaseResult:
        """Finish an informational phase."""
        return self._result(PhaseStatus.OK, message, details=details)

    def skip(self, message: str, **details: Any) -> PhaseResult:
        return self._result(PhaseStatus.SKIPPED, message, details=details)

    def fail(self, message: str, command: str | None = None, **details: Any) -> PhaseResult:
        return self._result(PhaseStatus.FAILED, message, failed_command=command, details=details)
