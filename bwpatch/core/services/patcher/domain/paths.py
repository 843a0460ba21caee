"""
L1 Domain — Sidecar and backup path derivation (pure).

All locations the subsystem reads or writes are derived here from
the target jar path, so the on-disk layout lives in one place.
"""

from __future__ import annotations

import hashlib
import re
from pathlib import Path

from bwpatch.core.services.patcher.data.constants import (
    BACKUP_EXT,
    BACKUPS_SUBDIR,
    CHECKSUM_SUFFIX,
    MARKER_SUFFIX,
    SIMPLE_BACKUP_SUFFIX,
)

_BACKUP_NAME_RE = re.compile(r"^(\d+)\.jar$")


def marker_path(jar_path: Path) -> Path:
    """``/x/bitwig.jar`` → ``/x/bitwig.patched``."""
    return jar_path.with_name(jar_path.stem + MARKER_SUFFIX)


def simple_backup_path(jar_path: Path) -> Path:
    """``/x/bitwig.jar`` → ``/x/bitwig.jar.backup``."""
    return jar_path.with_name(jar_path.stem + BACKUP_EXT + SIMPLE_BACKUP_SUFFIX)


def simple_checksum_path(jar_path: Path) -> Path:
    """``/x/bitwig.jar`` → ``/x/bitwig.jar.backup.sha256``."""
    return checksum_path_for(simple_backup_path(jar_path))


def checksum_path_for(backup_file: Path) -> Path:
    """Sidecar holding the hex digest of ``backup_file``."""
    return backup_file.with_name(backup_file.name + CHECKSUM_SUFFIX)


def target_hash(jar_path: Path) -> str:
    """SHA-256 of the resolved path string (not of the file content).

    Two installations with identical jars get separate namespaces;
    the same installation keeps its namespace across patches.
    """
    resolved = str(Path(jar_path).expanduser().resolve(strict=False))
    return hashlib.sha256(resolved.encode("utf-8")).hexdigest()


def backup_namespace(cache_root: Path, jar_path: Path) -> Path:
    """``<cache_root>/backups/<target_hash>``."""
    return cache_root / BACKUPS_SUBDIR / target_hash(jar_path)


def backup_file_name(timestamp: int) -> str:
    return f"{timestamp}{BACKUP_EXT}"


def parse_backup_timestamp(path: Path) -> int | None:
    """Timestamp of a namespaced backup file, or None for anything else."""
    m = _BACKUP_NAME_RE.match(path.name)
    return int(m.group(1)) if m else None
