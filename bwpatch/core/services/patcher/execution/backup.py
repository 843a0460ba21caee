"""
L4 Execution — Backup Manager.

Two retention strategies live side by side:

- **Namespaced store** (``<cache_root>/backups/<target_hash>/``): one
  ``<timestamp>.jar`` + ``<timestamp>.jar.sha256`` pair per snapshot,
  many generations per target.
- **Simple backup** (``bitwig.jar.backup`` next to the artifact):
  created once, never overwritten.

Only this module reads or writes backup files. A backup is trusted
only when its checksum sidecar exists and matches the bytes exactly.
"""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path

from bwpatch.core.models.artifact import BackupRecord
from bwpatch.core.services.patcher.domain.errors import (
    BackupNotFound,
    ChecksumMismatch,
    JarNotFound,
)
from bwpatch.core.services.patcher.domain.paths import (
    backup_file_name,
    backup_namespace,
    checksum_path_for,
    marker_path,
    parse_backup_timestamp,
    simple_backup_path,
    simple_checksum_path,
    target_hash,
)
from bwpatch.core.services.patcher.execution.checksum import (
    calculate_checksum,
    read_checksum_file,
    write_checksum_file,
)
from bwpatch.core.services.patcher.execution.markers import remove_marker

logger = logging.getLogger(__name__)


class BackupManager:
    """Owner of the namespaced backup tree under one cache root."""

    def __init__(self, cache_root: Path):
        self._cache_root = cache_root

    @property
    def cache_root(self) -> Path:
        return self._cache_root

    def namespace(self, target: Path) -> Path:
        return backup_namespace(self._cache_root, target)

    # ── Create ──────────────────────────────────────────────────

    def create_backup(self, target: Path) -> BackupRecord:
        """Snapshot ``target`` into its namespace.

        The sidecar digest is computed from the copied file, so it
        describes exactly the bytes that a later restore will use.

        Raises:
            JarNotFound: If the target does not exist.
            OSError: If the copy or sidecar write fails (nothing partial
                is left behind).
        """
        if not target.is_file():
            raise JarNotFound(target)

        ns = self.namespace(target)
        ns.mkdir(parents=True, exist_ok=True)

        ts = int(time.time())
        while (ns / backup_file_name(ts)).exists():
            ts += 1

        backup_file = ns / backup_file_name(ts)
        checksum_file = checksum_path_for(backup_file)
        try:
            shutil.copyfile(target, backup_file)
            write_checksum_file(checksum_file, calculate_checksum(backup_file))
        except OSError:
            backup_file.unlink(missing_ok=True)
            checksum_file.unlink(missing_ok=True)
            raise

        logger.info("Backup created: %s", backup_file)
        return BackupRecord(
            target_hash=target_hash(target),
            timestamp=ts,
            backup_file=backup_file,
            checksum_file=checksum_file,
            valid=True,
        )

    # ── Query ───────────────────────────────────────────────────

    def list_backups(self, target: Path) -> list[BackupRecord]:
        """All records in the target's namespace, newest first.

        Each record is verified; invalid ones are returned with
        ``valid=False`` rather than hidden.
        """
        records = [
            record.model_copy(update={"valid": self.verify(record)})
            for record in self._scan(target)
        ]
        return records

    def newest_record(self, target: Path) -> BackupRecord:
        """Record with the greatest timestamp, verified or not.

        Raises:
            BackupNotFound: If the namespace is absent or empty.
        """
        records = self._scan(target)
        if not records:
            raise BackupNotFound(self.namespace(target))
        return records[0]

    def find_latest(self, target: Path) -> BackupRecord:
        """Valid record with the greatest timestamp.

        Raises:
            BackupNotFound: If the namespace holds no valid record.
        """
        for record in self._scan(target):
            if self.verify(record):
                return record.model_copy(update={"valid": True})
        raise BackupNotFound(self.namespace(target))

    def has_backup(self, target: Path) -> bool:
        try:
            self.find_latest(target)
        except BackupNotFound:
            return False
        return True

    def verify(self, record: BackupRecord) -> bool:
        """Sidecar exists and matches the backup bytes."""
        try:
            self._verify_or_raise(record)
        except (ChecksumMismatch, OSError):
            return False
        return True

    # ── Restore ─────────────────────────────────────────────────

    def restore(self, target: Path) -> BackupRecord:
        """Copy the newest backup over ``target`` and drop the marker.

        The newest record must verify; an older valid backup is never
        substituted silently. The target is not touched unless the
        checksum matches.

        Raises:
            BackupNotFound: No backup in the namespace.
            ChecksumMismatch: Sidecar missing or digest differs.
            PermissionError: Target (or marker) not writable.
        """
        record = self.newest_record(target)
        self._verify_or_raise(record)

        shutil.copyfile(record.backup_file, target)
        remove_marker(marker_path(target))

        logger.info("Restored %s from %s", target, record.backup_file)
        return record.model_copy(update={"valid": True})

    # ── Retention ───────────────────────────────────────────────

    def prune(self, target: Path, keep: int) -> list[Path]:
        """Delete all but the newest ``keep`` snapshots.

        The newest valid snapshot always survives, even if newer
        invalid ones push it past ``keep``.

        Returns:
            Backup files that were removed.
        """
        keep = max(keep, 1)
        records = self._scan(target)
        survivors = {r.backup_file for r in records[:keep]}
        try:
            survivors.add(self.find_latest(target).backup_file)
        except BackupNotFound:
            pass

        removed: list[Path] = []
        for record in records:
            if record.backup_file in survivors:
                continue
            record.backup_file.unlink(missing_ok=True)
            record.checksum_file.unlink(missing_ok=True)
            removed.append(record.backup_file)
            logger.info("Pruned backup %s", record.backup_file)
        return removed

    # ── Internals ───────────────────────────────────────────────

    def _scan(self, target: Path) -> list[BackupRecord]:
        ns = self.namespace(target)
        if not ns.is_dir():
            return []

        thash = target_hash(target)
        records: list[BackupRecord] = []
        for entry in ns.iterdir():
            ts = parse_backup_timestamp(entry)
            if ts is None or not entry.is_file():
                continue
            records.append(BackupRecord(
                target_hash=thash,
                timestamp=ts,
                backup_file=entry,
                checksum_file=checksum_path_for(entry),
            ))
        records.sort(key=lambda r: r.timestamp, reverse=True)
        return records

    @staticmethod
    def _verify_or_raise(record: BackupRecord) -> None:
        if not record.checksum_file.is_file():
            raise ChecksumMismatch(
                f"Checksum sidecar missing for {record.backup_file.name}",
                path=record.checksum_file,
            )
        expected = read_checksum_file(record.checksum_file)
        actual = calculate_checksum(record.backup_file)
        if expected != actual:
            raise ChecksumMismatch(
                f"Backup {record.backup_file.name} does not match its checksum",
                path=record.backup_file,
            )


# ── Simple backup (fixed name next to the artifact) ────────────


def create_simple_backup(target: Path) -> Path:
    """Create ``<jar>.backup`` once; an existing one is never overwritten.

    Raises:
        JarNotFound: If the target does not exist.
        OSError: If the directory is not writable.
    """
    if not target.is_file():
        raise JarNotFound(target)

    backup = simple_backup_path(target)
    if backup.exists():
        logger.debug("Simple backup already present: %s", backup)
        return backup

    shutil.copyfile(target, backup)
    write_checksum_file(simple_checksum_path(target), calculate_checksum(backup))
    logger.info("Simple backup created: %s", backup)
    return backup


def restore_simple_backup(target: Path) -> None:
    """Copy ``<jar>.backup`` over the target and drop the marker.

    The sidecar is verified when it exists.

    Raises:
        BackupNotFound: If there is no simple backup.
        ChecksumMismatch: If the sidecar exists and does not match.
    """
    backup = simple_backup_path(target)
    if not backup.is_file():
        raise BackupNotFound(backup)

    checksum_file = simple_checksum_path(target)
    if checksum_file.is_file():
        if read_checksum_file(checksum_file) != calculate_checksum(backup):
            raise ChecksumMismatch(path=backup)
    else:
        logger.warning("Simple backup %s has no checksum sidecar", backup)

    shutil.copyfile(backup, target)
    remove_marker(marker_path(target))
    logger.info("Restored %s from simple backup", target)


def has_simple_backup(target: Path) -> bool:
    return simple_backup_path(target).is_file()
