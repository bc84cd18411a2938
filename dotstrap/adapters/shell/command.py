"""
Shell command adapter — run a command and capture its result.

This is the most fundamental adapter: every package manager, asdf,
gem, npm and collaborator-script invocation goes through it.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import time
from pathlib import Path

from dotstrap.adapters.base import Adapter, ExecutionContext
from dotstrap.core.models.action import Receipt

logger = logging.getLogger(__name__)

# Tail kept from captured output, enough for an error message
_OUTPUT_TAIL = 2000


def format_command(command: list[str], sudo: bool = False) -> str:
    """Render an argv list the way a user would type it."""
    argv = ["sudo", *command] if sudo else list(command)
    return shlex.join(argv)


class ShellCommandAdapter(Adapter):
    """Execute commands and capture output.

    Action params:
        command (list[str]): argv to execute (no shell unless argv says so).
        sudo (bool): Prefix with ``sudo`` unless already root.
        capture (bool): Capture stdout/stderr (default: True). Install
            commands set this False so prompts and progress reach the
            terminal.
        input (str): Text piped to stdin.
        env (dict): Extra environment for this command only.
        cwd (str): Working directory.
        timeout (int | None): Seconds; None (default) waits forever.
    """

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        return shutil.which("sh") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        command = context.params.get("command")
        if not command:
            return False, "Missing required param: 'command'"
        if not isinstance(command, list) or not all(isinstance(a, str) for a in command):
            return False, "'command' must be a list of strings"

        cwd = context.params.get("cwd")
        if cwd and not Path(cwd).is_dir():
            return False, f"Working directory does not exist: {cwd}"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        params = context.params
        argv: list[str] = list(params["command"])
        if params.get("sudo") and os.geteuid() != 0:
            argv = ["sudo", *argv]

        capture = params.get("capture", True)
        timeout = params.get("timeout")
        display = shlex.join(argv)

        env = os.environ.copy()
        env.update(context.env)
        env.update(params.get("env") or {})
        if context.path_prepend:
            env["PATH"] = os.pathsep.join([*context.path_prepend, env.get("PATH", "")])

        logger.debug("Executing: %s (cwd=%s)", display, params.get("cwd"))
        start = time.monotonic()

        try:
            result = subprocess.run(
                argv,
                capture_output=capture,
                text=True,
                input=params.get("input"),
                env=env,
                cwd=params.get("cwd"),
                timeout=timeout,
            )
        except FileNotFoundError:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command not found: {argv[0]}",
                metadata={"command": display},
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command timed out after {timeout}s",
                metadata={"command": display, "timeout": timeout},
            )
        except Exception as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command execution error: {e}",
                metadata={"command": display},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        output = (result.stdout or "").strip()[-_OUTPUT_TAIL:]
        stderr = (result.stderr or "").strip()[-_OUTPUT_TAIL:]

        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                action_id=context.action.id,
                output=output,
                duration_ms=elapsed_ms,
                metadata={
                    "command": display,
                    "return_code": result.returncode,
                    "stderr": stderr,
                },
            )

        return Receipt.failure(
            adapter=self.name,
            action_id=context.action.id,
            error=stderr or f"Command exited with code {result.returncode}",
            duration_ms=elapsed_ms,
            metadata={
                "command": display,
                "return_code": result.returncode,
                "stdout": output,
            },
        )
