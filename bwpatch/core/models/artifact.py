"""
Artifact models — the files the patch subsystem reasons about.

TargetArtifact is the jar being patched. BackupRecord is one snapshot
in the namespaced store. PatcherArtifact is the pinned external tool.
ElevationRequest is a fully rendered script awaiting privileged
execution. InstallationHint is what the installation detector hands us.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from bwpatch.core.services.patcher.data.constants import (
    PATCHER_JAR_NAME,
    PATCHER_JAR_SHA256,
    PATCHER_JAR_URL,
    PATCHER_SUBDIR,
)
from bwpatch.core.services.patcher.domain.paths import (
    marker_path,
    simple_backup_path,
    simple_checksum_path,
)


class TargetArtifact(BaseModel):
    """The jar being patched.

    Patched-state is derived from the marker on every access and
    writability is never stored here: both are probed per operation.
    """

    path: Path

    @property
    def marker(self) -> Path:
        return marker_path(self.path)

    @property
    def simple_backup(self) -> Path:
        return simple_backup_path(self.path)

    @property
    def simple_checksum(self) -> Path:
        return simple_checksum_path(self.path)

    @property
    def exists(self) -> bool:
        return self.path.is_file()

    @property
    def is_patched(self) -> bool:
        """Marker existence is the sole truth for patched-state."""
        return self.marker.exists()


class BackupRecord(BaseModel):
    """One snapshot in ``backups/<target_hash>/``."""

    target_hash: str
    timestamp: int
    backup_file: Path
    checksum_file: Path
    valid: bool | None = None      # None = not verified yet

    def to_dict(self) -> dict[str, Any]:
        data = self.model_dump(mode="json")
        data["size_bytes"] = (
            self.backup_file.stat().st_size if self.backup_file.is_file() else 0
        )
        return data


class PatcherArtifact(BaseModel):
    """The externally hosted, checksum-pinned patcher jar."""

    url: str = PATCHER_JAR_URL
    name: str = PATCHER_JAR_NAME
    sha256: str = PATCHER_JAR_SHA256
    cache_path: Path

    @classmethod
    def pinned(cls, cache_root: Path) -> PatcherArtifact:
        """The pinned release cached under ``<cache_root>/patcher/``."""
        return cls(cache_path=cache_root / PATCHER_SUBDIR / PATCHER_JAR_NAME)


class ElevationRequest(BaseModel):
    """A script to run with elevated privileges.

    ``script`` is final: every value has already been validated and
    escaped. ``env`` lists values the script exports for the tool.
    """

    name: str
    script: str
    env: dict[str, str] = Field(default_factory=dict)
    target: Path | None = None


class InstallationHint(BaseModel):
    """What the installation detector reports for one Bitwig install.

    ``needs_elevation`` is a UI hint only; decisions use live probes.
    """

    path: Path
    jar_path: Path
    version: str = ""
    needs_elevation: bool = False
