"""
Action and Receipt — what a phase asks for and what it gets back.

An Action names an adapter and carries that adapter's params (a command
line, a clone URL, a line to append). The adapter answers with a
Receipt. Failures travel in the receipt so that phases decide what a
failure means: fatal, a warning, or a retry package by package.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

ActionKind = Literal["probe", "install", "refresh", "invoke"]
ReceiptStatus = Literal["ok", "skipped", "failed"]


class Action(BaseModel):
    """One side effect (or query) against the host.

    ``kind`` drives dry-run and the install count:

    - ``probe``: read-only; always runs, dry-run included.
    - ``install``: creates missing state; counts as an install.
    - ``refresh``: updates present state (pull, plugin update); runs
      every time, never counts.
    - ``invoke``: hands off to something that honours ``--dry-run``
      itself (the repository's setup.sh), so it runs in dry-run too.
    """

    id: str
    adapter: str
    name: str = ""
    kind: ActionKind = "install"
    params: dict[str, Any] = Field(default_factory=dict)

    @property
    def mutating(self) -> bool:
        return self.kind in ("install", "refresh")


class Receipt(BaseModel):
    """Outcome of one action. ``output`` holds captured stdout, or the
    skip reason for skipped actions."""

    adapter: str
    action_id: str
    status: ReceiptStatus = "ok"
    output: str = ""
    error: str | None = None
    duration_ms: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def skipped(self) -> bool:
        return self.status == "skipped"

    @classmethod
    def success(cls, adapter: str, action_id: str, output: str = "", **extra: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, output=output, **extra)

    @classmethod
    def failure(cls, adapter: str, action_id: str, error: str, **extra: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, status="failed", error=error, **extra)

    @classmethod
    def skip(cls, adapter: str, action_id: str, reason: str = "", **extra: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, status="skipped", output=reason, **extra)
