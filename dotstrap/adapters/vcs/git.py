"""
Git adapter — clone and fast-forward repositories.

Used for the dotfiles checkout and, on Linux, the asdf checkout.
Uses the git CLI — never raw API calls.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time
from pathlib import Path

from dotstrap.adapters.base import Adapter, ExecutionContext
from dotstrap.core.models.action import Receipt

logger = logging.getLogger(__name__)


class GitAdapter(Adapter):
    """Git operations.

    Action params:
        operation (str): One of 'clone', 'pull'.
        url (str): Repository URL (for 'clone').
        branch (str): Branch or tag to check out (for 'clone', optional).
        dest (str): Target directory (clone destination / repo to pull).
        depth (int): Shallow clone depth (for 'clone', optional).
    """

    _OPERATIONS = {"clone", "pull"}

    @property
    def name(self) -> str:
        return "git"

    def is_available(self) -> bool:
        return shutil.which("git") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.params.get("operation", "")
        if operation not in self._OPERATIONS:
            valid = ", ".join(sorted(self._OPERATIONS))
            return False, f"Unknown operation '{operation}'. Valid: {valid}"

        if not context.params.get("dest"):
            return False, "Missing required param: 'dest'"

        if operation == "clone" and not context.params.get("url"):
            return False, "Missing required param: 'url' for clone operation"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.params["operation"]
        if operation == "clone":
            return self._clone(context)
        return self._pull(context)

    # ── Operations ──────────────────────────────────────────────

    def _clone(self, ctx: ExecutionContext) -> Receipt:
        args = ["clone"]
        if ctx.params.get("depth"):
            args += ["--depth", str(ctx.params["depth"])]
        if ctx.params.get("branch"):
            args += ["--branch", ctx.params["branch"]]
        args += [ctx.params["url"], ctx.params["dest"]]
        return self._git(ctx, args)

    def _pull(self, ctx: ExecutionContext) -> Receipt:
        dest = ctx.params["dest"]
        if not Path(dest, ".git").exists():
            return Receipt.failure(
                adapter=self.name,
                action_id=ctx.action.id,
                error=f"Not a git checkout: {dest}",
            )
        return self._git(ctx, ["-C", dest, "pull", "--ff-only"])

    # ── Helpers ─────────────────────────────────────────────────

    def _git(self, ctx: ExecutionContext, args: list[str]) -> Receipt:
        """Run a git command and wrap the result in a receipt."""
        start = time.monotonic()
        try:
            result = subprocess.run(
                ["git", *args],
                capture_output=True,
                text=True,
            )
        except FileNotFoundError:
            return Receipt.failure(
                adapter=self.name,
                action_id=ctx.action.id,
                error="git is not installed",
            )
        except Exception as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=ctx.action.id,
                error=f"Git error: {e}",
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        if result.returncode != 0:
            return Receipt.failure(
                adapter=self.name,
                action_id=ctx.action.id,
                error=result.stderr.strip() or f"git exited with code {result.returncode}",
                duration_ms=elapsed_ms,
                metadata={"args": args, "return_code": result.returncode},
            )

        logger.debug("git %s → ok", " ".join(args))
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=(result.stdout or result.stderr).strip(),
            duration_ms=elapsed_ms,
            metadata={"args": args},
        )
