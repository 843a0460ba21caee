"""
L5 Orchestration — Backup policies.

What the Patch Executor does when the pre-patch snapshot fails.
``best_effort`` keeps the patch available when the cache is broken;
``required`` refuses to patch without a backup.
"""

from __future__ import annotations

import logging

from bwpatch.core.services.patcher.domain.errors import StepFailed

logger = logging.getLogger(__name__)


class BackupPolicy:
    """Best effort: log the failure and continue."""

    name = "best_effort"

    def on_failure(self, error: Exception) -> None:
        logger.warning("Backup failed, continuing without one: %s", error)


class RequiredBackupPolicy(BackupPolicy):
    """Abort the patch with the backup error."""

    name = "required"

    def on_failure(self, error: Exception) -> None:
        logger.error("Backup failed, aborting patch: %s", error)
        raise StepFailed("backup", error) from error


BACKUP_POLICIES: dict[str, BackupPolicy] = {
    "best_effort": BackupPolicy(),
    "required": RequiredBackupPolicy(),
}


def get_backup_policy(name: str) -> BackupPolicy:
    """Look up a policy by name (``KeyError`` for unknown names)."""
    return BACKUP_POLICIES[name]
