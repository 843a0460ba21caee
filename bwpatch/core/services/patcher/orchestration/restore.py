"""
L5 Orchestration — Restore Executor.

Restores in-process first. Only a ``PermissionError`` leads to the
elevated script, which repeats the same checksum-verify → copy →
marker-removal sequence with privileges. A missing backup or a
checksum mismatch is never "fixed" by elevating.

Backup sources, in order: the newest namespaced backup, then the
fixed-name simple backup next to the jar.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from bwpatch.adapters.base import PlatformAdapter
from bwpatch.core.context import PatchContext
from bwpatch.core.models.artifact import BackupRecord, ElevationRequest, TargetArtifact
from bwpatch.core.services.patcher.data.constants import SCRIPT_CHECKSUM_EXIT
from bwpatch.core.services.patcher.domain.errors import (
    BackupNotFound,
    ChecksumMismatch,
    PermissionDenied,
    StepFailed,
)
from bwpatch.core.services.patcher.execution.backup import (
    BackupManager,
    has_simple_backup,
    restore_simple_backup,
)
from bwpatch.core.services.patcher.orchestration.patch import raise_for_receipt

logger = logging.getLogger(__name__)


@dataclass
class RestoreOutcome:
    target: Path
    source: Literal["backup", "simple_backup"]
    backup_file: Path
    elevated: bool = False
    record: BackupRecord | None = None


class RestoreExecutor:
    """Put a verified backup back over one jar."""

    def __init__(
        self,
        ctx: PatchContext,
        adapter: PlatformAdapter,
        *,
        backups: BackupManager | None = None,
    ):
        self.ctx = ctx
        self.adapter = adapter
        self.backups = backups or BackupManager(ctx.cache_root)

    def execute(self, target: Path) -> RestoreOutcome:
        """Restore ``target`` from the newest backup.

        Raises:
            BackupNotFound: Neither a namespaced nor a simple backup exists.
            ChecksumMismatch: The backup to use fails verification.
            PermissionDenied: Not writable and no elevation mechanism.
            ElevationCancelled, ElevationFailed, InvalidInput, StepFailed.
        """
        artifact = TargetArtifact(path=target)
        try:
            record = self.backups.newest_record(target)
        except BackupNotFound:
            if not has_simple_backup(target):
                raise
            return self._restore_simple(artifact)

        try:
            self.backups.restore(target)
        except PermissionError as e:
            logger.info("Restore of %s needs elevation: %s", target, e)
            self._restore_elevated(artifact, record.backup_file, record.checksum_file)
            return RestoreOutcome(
                target=target,
                source="backup",
                backup_file=record.backup_file,
                elevated=True,
                record=record,
            )
        except OSError as e:
            raise StepFailed("restore", e, path=target) from e

        return RestoreOutcome(
            target=target,
            source="backup",
            backup_file=record.backup_file,
            record=record.model_copy(update={"valid": True}),
        )

    def _restore_simple(self, artifact: TargetArtifact) -> RestoreOutcome:
        logger.info("No namespaced backup for %s, using simple backup", artifact.path)
        outcome = RestoreOutcome(
            target=artifact.path,
            source="simple_backup",
            backup_file=artifact.simple_backup,
        )
        try:
            restore_simple_backup(artifact.path)
        except PermissionError as e:
            logger.info("Restore of %s needs elevation: %s", artifact.path, e)
            self._restore_elevated(artifact, artifact.simple_backup, artifact.simple_checksum)
            outcome.elevated = True
        except OSError as e:
            raise StepFailed("restore", e, path=artifact.path) from e
        return outcome

    def _restore_elevated(self, artifact: TargetArtifact, backup: Path, checksum_file: Path) -> None:
        if not self.adapter.is_available(self.ctx):
            raise PermissionDenied(path=artifact.path)

        identity = self.ctx.validated_identity()
        script = self.adapter.render_restore_script(
            backup, checksum_file, artifact.path, artifact.marker, identity,
        )
        receipt = self.adapter.run_elevated(
            ElevationRequest(name="restore", script=script, env=identity, target=artifact.path),
            self.ctx,
        )
        if receipt.failed and receipt.return_code == SCRIPT_CHECKSUM_EXIT:
            raise ChecksumMismatch(receipt.error or None, path=backup)
        raise_for_receipt(receipt, artifact.path)
        logger.info("Restored %s from %s with elevation", artifact.path, backup)
