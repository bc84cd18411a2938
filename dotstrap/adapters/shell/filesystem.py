"""
Filesystem adapter — idempotent file edits.

Provides a receipt-returning interface for the few files the
orchestrator edits itself, so those edits are dry-run aware like
every other mutation.
"""

from __future__ import annotations

import logging
from pathlib import Path

from dotstrap.adapters.base import Adapter, ExecutionContext
from dotstrap.core.models.action import Receipt

logger = logging.getLogger(__name__)


class FilesystemAdapter(Adapter):
    """File operations with receipts.

    Action params:
        operation (str): One of 'append_line', 'mkdir'.
        path (str): Absolute target path.
        line (str): Line to append (for 'append_line').
    """

    _OPERATIONS = {"append_line", "mkdir"}

    @property
    def name(self) -> str:
        return "filesystem"

    def is_available(self) -> bool:
        return True

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.params.get("operation", "")
        if not operation:
            return False, "Missing required param: 'operation'"

        if operation not in self._OPERATIONS:
            valid = ", ".join(sorted(self._OPERATIONS))
            return False, f"Unknown operation '{operation}'. Valid: {valid}"

        path = context.params.get("path", "")
        if not path:
            return False, "Missing required param: 'path'"
        if not Path(path).is_absolute():
            return False, f"Path must be absolute: {path}"

        if operation == "append_line" and not context.params.get("line"):
            return False, "Missing required param: 'line' for append_line operation"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.params["operation"]
        target = Path(context.params["path"])

        try:
            if operation == "append_line":
                return self._append_line(context, target)
            return self._mkdir(context, target)
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Filesystem error: {e}",
                metadata={"operation": operation, "path": str(target)},
            )

    def _append_line(self, ctx: ExecutionContext, target: Path) -> Receipt:
        line = ctx.params["line"]
        existing = target.read_text(encoding="utf-8") if target.is_file() else ""

        if line in existing.splitlines():
            return Receipt.success(
                adapter=self.name,
                action_id=ctx.action.id,
                output=f"Line already present in {target}",
                metadata={"path": str(target), "added": False},
            )

        target.parent.mkdir(parents=True, exist_ok=True)
        prefix = "" if not existing or existing.endswith("\n") else "\n"
        with target.open("a", encoding="utf-8") as f:
            f.write(f"{prefix}{line}\n")

        logger.debug("Appended to %s: %s", target, line)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Appended line to {target}",
            metadata={"path": str(target), "added": True},
        )

    def _mkdir(self, ctx: ExecutionContext, target: Path) -> Receipt:
        target.mkdir(parents=True, exist_ok=True)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Directory created: {target}",
            metadata={"path": str(target)},
        )
