"""Adapters — tool bindings for external side effects.

Public re-exports for convenient access.
"""

from dotstrap.adapters.base import Adapter, ExecutionContext
from dotstrap.adapters.mock import MockAdapter
from dotstrap.adapters.registry import AdapterRegistry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ExecutionContext",
    "MockAdapter",
]
