"""
ToolVersionSpec — one declared tool/version pair from the version manifest.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ToolVersionSpec(BaseModel):
    """A runtime version the runtime phase must ensure is installed."""

    model_config = ConfigDict(frozen=True)

    tool_name: str
    requested_version: str
    line: int = 0                   # 1-based line in the manifest

    def __str__(self) -> str:
        return f"{self.tool_name} {self.requested_version}"
