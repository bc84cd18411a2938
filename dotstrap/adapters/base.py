"""
Adapter base — the seam between phases and the host.

A phase never spawns a process or edits a file itself. It describes the
side effect as an Action and hands it to the registry, which picks the
adapter named on the action. Swapping adapters (mock mode, a simulated
host in tests) therefore changes where commands land without touching
any phase.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, Field

from dotstrap.core.models.action import Action, Receipt


class ExecutionContext(BaseModel):
    """One action plus the run environment it executes in.

    ``env`` and ``path_prepend`` accumulate over the run: once the
    package manager phase has exported ``HOMEBREW_PREFIX`` or the
    runtimes phase has put asdf shims on PATH, every later command
    sees them.
    """

    action: Action
    dry_run: bool = False
    env: dict[str, str] = Field(default_factory=dict)
    path_prepend: list[str] = Field(default_factory=list)

    @property
    def params(self) -> dict:
        return self.action.params

    @property
    def argv(self) -> list[str]:
        """The command for shell actions, empty for everything else."""
        return list(self.params.get("command") or [])


class Adapter(ABC):
    """A binding to one external tool (shell, git, the filesystem).

    ``execute`` reports every outcome through a Receipt. Raising is a
    bug; the registry converts it to a failed receipt anyway.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Key actions use to address this adapter."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the underlying tool exists on this host."""

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Check the action's params before anything runs.

        Returns:
            (ok, reason). ``reason`` is empty when ok.
        """

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Perform the side effect and describe the outcome."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
