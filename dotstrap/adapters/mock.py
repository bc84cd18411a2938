"""
Mock adapter — a scriptable stand-in for any adapter.

Succeeds at everything unless scripted otherwise. Responses are keyed
either by action id (``"runtimes:3"``) or by command prefix
(``["apt-get", "install"]``); the longest matching prefix wins.
Every context it receives is kept for assertions.
"""

from __future__ import annotations

from dotstrap.adapters.base import Adapter, ExecutionContext
from dotstrap.core.models.action import Receipt


class MockAdapter(Adapter):
    def __init__(
        self,
        adapter_name: str = "shell",
        available: bool = True,
        default_output: str = "",
    ):
        self._name = adapter_name
        self._available = available
        self._default_output = default_output
        self._by_id: dict[str, tuple[bool, str]] = {}
        self._by_prefix: list[tuple[list[str], bool, str]] = []
        self._calls: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    def is_available(self) -> bool:
        return self._available

    # ── Scripting ───────────────────────────────────────────────

    def respond(self, prefix: list[str], output: str = "", ok: bool = True) -> None:
        """Answer commands starting with ``prefix``.

        For a failure, ``output`` becomes the receipt's error.
        """
        self._by_prefix.append((list(prefix), ok, output))
        self._by_prefix.sort(key=lambda entry: len(entry[0]), reverse=True)

    def fail_on(self, prefix: list[str], error: str = "Mock failure") -> None:
        self.respond(prefix, error, ok=False)

    def set_failure(self, action_id: str, error: str = "Mock failure") -> None:
        """Fail one specific action, e.g. ``"clone:1"``."""
        self._by_id[action_id] = (False, error)

    def reset(self) -> None:
        self._by_id.clear()
        self._by_prefix.clear()
        self._calls.clear()

    # ── Inspection ──────────────────────────────────────────────

    @property
    def call_log(self) -> list[ExecutionContext]:
        return self._calls

    @property
    def call_count(self) -> int:
        return len(self._calls)

    @property
    def commands(self) -> list[list[str]]:
        """argv of every shell action received, in order."""
        return [c.argv for c in self._calls]

    # ── Adapter protocol ────────────────────────────────────────

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def _lookup(self, context: ExecutionContext) -> tuple[bool, str]:
        if context.action.id in self._by_id:
            return self._by_id[context.action.id]
        argv = context.argv
        for prefix, ok, text in self._by_prefix:
            if argv[: len(prefix)] == prefix:
                return ok, text
        return True, self._default_output

    def execute(self, context: ExecutionContext) -> Receipt:
        self._calls.append(context)
        ok, text = self._lookup(context)
        if ok:
            return Receipt.success(
                adapter=self._name,
                action_id=context.action.id,
                output=text,
                metadata={"mock": True},
            )
        return Receipt.failure(adapter=self._name, action_id=context.action.id, error=text)
