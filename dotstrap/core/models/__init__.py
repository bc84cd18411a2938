"""
Domain models — Pydantic types for the bootstrap orchestrator.

All models are re-exported here for convenient access:

    from dotstrap.core.models import PlatformProfile, RunConfig, PhaseResult
"""

from dotstrap.core.models.action import Action, Receipt
from dotstrap.core.models.manifest import ToolVersionSpec
from dotstrap.core.models.platform import (
    Distro,
    OSName,
    PackageManager,
    PlatformProfile,
)
from dotstrap.core.models.run import PhaseResult, PhaseStatus, RunConfig, RunReport

__all__ = [
    "Action",
    "Distro",
    "OSName",
    "PackageManager",
    "PhaseResult",
    "PhaseStatus",
    "PlatformProfile",
    "Receipt",
    "RunConfig",
    "RunReport",
    "ToolVersionSpec",
]
