"""
Domain models — Pydantic types for the patch subsystem.

    from bwpatch.core.models import Receipt, TargetArtifact, BackupRecord
"""

from bwpatch.core.models.artifact import (
    BackupRecord,
    ElevationRequest,
    InstallationHint,
    PatcherArtifact,
    TargetArtifact,
)
from bwpatch.core.models.receipt import Receipt

__all__ = [
    "BackupRecord",
    "ElevationRequest",
    "InstallationHint",
    "PatcherArtifact",
    "Receipt",
    "TargetArtifact",
]
