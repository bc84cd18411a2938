"""
Adapter registry — routes each Action to the adapter it names.

Dry-run policy lives here rather than in the phases: a mutating action
(install, refresh) is validated and then answered with a skip receipt
describing what would have run. Probes and invokes go through, so a
phase's check-then-act logic sees the real host either way.

Mock mode answers every action with success before any adapter is
consulted. It exists for exercising the CLI on a machine that must not
be touched.
"""

from __future__ import annotations

import logging
import time

from dotstrap.adapters.base import Adapter, ExecutionContext
from dotstrap.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


class AdapterRegistry:
    def __init__(self, mock_mode: bool = False):
        self._adapters: dict[str, Adapter] = {}
        self._mock_mode = mock_mode

    @property
    def mock_mode(self) -> bool:
        return self._mock_mode

    def register(self, adapter: Adapter) -> None:
        if adapter.name in self._adapters:
            logger.warning("Replacing adapter %r", adapter.name)
        self._adapters[adapter.name] = adapter

    def get(self, name: str) -> Adapter | None:
        return self._adapters.get(name)

    def names(self) -> list[str]:
        return sorted(self._adapters)

    def execute_action(
        self,
        action: Action,
        dry_run: bool = False,
        env: dict[str, str] | None = None,
        path_prepend: list[str] | None = None,
    ) -> Receipt:
        """Run ``action`` and return its receipt. Never raises.

        ``env`` and ``path_prepend`` are the run-wide overrides the
        engine has accumulated so far.
        """
        started = time.monotonic()
        receipt = self._dispatch(
            ExecutionContext(
                action=action,
                dry_run=dry_run,
                env=env or {},
                path_prepend=path_prepend or [],
            )
        )
        receipt.duration_ms = int((time.monotonic() - started) * 1000)
        return receipt

    def _dispatch(self, context: ExecutionContext) -> Receipt:
        action = context.action
        label = action.name or action.id

        if self._mock_mode:
            return Receipt.success(
                adapter=action.adapter,
                action_id=action.id,
                output=f"[mock] {label}",
                metadata={"mock": True, "dry_run": context.dry_run},
            )

        adapter = self._adapters.get(action.adapter)
        if adapter is None:
            return self._failed(action, f"No adapter registered for '{action.adapter}'")

        try:
            valid, reason = adapter.validate(context)
        except Exception as e:
            return self._failed(action, f"Validation error: {e}")
        if not valid:
            return self._failed(action, f"Validation failed: {reason}")

        if context.dry_run and action.mutating:
            logger.debug("dry-run, not executing: %s", label)
            return Receipt.skip(
                adapter=action.adapter,
                action_id=action.id,
                reason=f"[dry-run] Would run: {label}",
                metadata={"dry_run": True},
            )

        try:
            return adapter.execute(context)
        except Exception as e:
            logger.error("%s adapter raised on %s: %s", action.adapter, label, e)
            return self._failed(action, f"Unexpected error: {e}")

    @staticmethod
    def _failed(action: Action, error: str) -> Receipt:
        return Receipt.failure(adapter=action.adapter, action_id=action.id, error=error)
