"""
Patching use cases — the public API of the patch subsystem.

    patch(jar)        auto-elevating, idempotent via the marker
    restore(jar)      elevates only on a permission failure
    is_patched(jar)   pure stat of the marker
    has_backup(jar)   simple backup or a valid namespaced backup
    get_status(jar)   everything a UI wants to show about one jar

``patch`` and ``restore`` never raise ``PatchError``: failures come
back in the ``PatchResult`` with a stable ``error_kind``. They, and
``create_backup`` and ``get_status``, report a bad config in the result;
the plain queries ``has_backup``, ``list_backups`` and ``prune_backups``
raise ``ConfigError`` instead.

Operations on the same jar are serialized within this process.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from bwpatch.adapters.base import PlatformAdapter
from bwpatch.adapters.registry import adapter_for
from bwpatch.core.config.loader import ConfigError, Settings, load_settings
from bwpatch.core.context import PatchContext
from bwpatch.core.models.artifact import BackupRecord, InstallationHint, TargetArtifact
from bwpatch.core.persistence.audit import AuditEntry, AuditWriter
from bwpatch.core.services.patcher.detection.java_runtime import describe_java, find_java
from bwpatch.core.services.patcher.domain.errors import (
    AlreadyPatched,
    NotPatched,
    PatchError,
)
from bwpatch.core.services.patcher.execution.backup import (
    BackupManager,
    has_simple_backup,
)
from bwpatch.core.services.patcher.execution.download import patcher_status
from bwpatch.core.services.patcher.execution.subprocess_runner import run_subprocess
from bwpatch.core.services.patcher.orchestration.patch import PatchExecutor
from bwpatch.core.services.patcher.orchestration.restore import RestoreExecutor

logger = logging.getLogger(__name__)

# A jar path, or what the installation detector reported for it
ArtifactRef = Path | str | InstallationHint


# ── Results ─────────────────────────────────────────────────────


@dataclass
class PatchResult:
    """Outcome of one patch, restore or backup operation."""

    ok: bool
    action: str
    target: Path
    elevated: bool = False
    already_patched: bool = False
    error_kind: str | None = None
    error: str | None = None
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    backup: Path | None = None

    @classmethod
    def from_error(cls, action: str, target: Path, error: PatchError) -> PatchResult:
        return cls(
            ok=False,
            action=action,
            target=target,
            already_patched=isinstance(error, AlreadyPatched),
            error_kind=error.kind,
            error=str(error),
            stdout=getattr(error, "stdout", ""),
            stderr=getattr(error, "stderr", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        result: dict[str, Any] = {
            "ok": self.ok,
            "action": self.action,
            "target": str(self.target),
            "elevated": self.elevated,
            "already_patched": self.already_patched,
            "duration_ms": self.duration_ms,
        }
        if self.backup is not None:
            result["backup"] = str(self.backup)
        if self.error:
            result["error_kind"] = self.error_kind
            result["error"] = self.error
        if self.stdout or self.stderr:
            result["stdout"] = self.stdout
            result["stderr"] = self.stderr
        return result


@dataclass
class StatusResult:
    """Everything known about one jar, without changing anything."""

    target: Path
    exists: bool = False
    patched: bool = False
    writable: bool = False
    elevation_available: bool = False
    adapter: str = ""
    simple_backup: bool = False
    backups: list[BackupRecord] = field(default_factory=list)
    java: Path | None = None
    java_version: str = ""
    patcher: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @property
    def has_backup(self) -> bool:
        return self.simple_backup or any(b.valid for b in self.backups)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"target": str(self.target)}
        if self.error:
            result["error"] = self.error
            return result

        result.update({
            "exists": self.exists,
            "patched": self.patched,
            "writable": self.writable,
            "elevation": {"available": self.elevation_available, "adapter": self.adapter},
            "has_backup": self.has_backup,
            "simple_backup": self.simple_backup,
            "backups": [b.to_dict() for b in self.backups],
            "java": {
                "path": str(self.java) if self.java else None,
                "version": self.java_version,
            },
            "patcher": self.patcher,
        })
        return result


# ── Per-path serialization ──────────────────────────────────────

@dataclass
class _PathLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


# Entries live only while some caller holds or waits for them
_locks: dict[str, _PathLock] = {}
_locks_guard = threading.Lock()


@contextmanager
def _target_lock(target: Path) -> Iterator[None]:
    key = str(target.resolve())
    with _locks_guard:
        entry = _locks.setdefault(key, _PathLock())
        entry.users += 1
    try:
        with entry.lock:
            yield
    finally:
        with _locks_guard:
            entry.users -= 1
            if entry.users == 0:
                del _locks[key]


# ── Helpers ─────────────────────────────────────────────────────


def build_context(
    settings: Settings | None = None,
    config_path: Path | None = None,
) -> PatchContext:
    """Context for the running process.

    Raises:
        ConfigError: If the config file is missing or invalid.
    """
    settings = settings or load_settings(config_path)
    return PatchContext.from_environment(settings=settings)


def _audit(ctx: PatchContext, result: PatchResult, **extra: Any) -> None:
    if result.ok:
        status = "ok"
    elif result.error_kind == "elevation_cancelled":
        status = "cancelled"
    elif result.already_patched:
        status = "already_patched"
    else:
        status = "failed"
    AuditWriter(ctx.audit_path).write(AuditEntry(
        operation=result.action,
        target=str(result.target),
        status=status,
        elevated=result.elevated,
        duration_ms=result.duration_ms,
        error_kind=result.error_kind,
        error=result.error,
        context=extra,
    ))


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _target_path(artifact: ArtifactRef) -> Path:
    if isinstance(artifact, InstallationHint):
        # needs_elevation is ignored; the executors probe for themselves
        return artifact.jar_path
    return Path(artifact)


# ── Public API ──────────────────────────────────────────────────


def patch(
    artifact_path: ArtifactRef,
    *,
    context: PatchContext | None = None,
    settings: Settings | None = None,
    adapter: PlatformAdapter | None = None,
    **executor_options: Any,
) -> PatchResult:
    """Patch the jar at ``artifact_path`` in place.

    Args:
        artifact_path: The ``bitwig.jar`` to patch.
        context: Explicit context; built from the environment if None.
        settings: Used to build the context when none is given.
        adapter: Privilege broker; the platform's own if None.
        **executor_options: Passed through to ``PatchExecutor``
            (``runner``, ``java_finder``, ``acquire``, ``policy``).
    """
    start = time.monotonic()
    target = _target_path(artifact_path)
    try:
        ctx = context or build_context(settings)
    except ConfigError as e:
        return PatchResult(ok=False, action="patch", target=target,
                           error_kind="config_error", error=str(e))
    adapter = adapter or adapter_for(ctx)

    with _target_lock(target):
        executor = PatchExecutor(ctx, adapter, **executor_options)
        try:
            outcome = executor.execute(target)
        except PatchError as e:
            logger.warning("Patch of %s failed: %s", target, e)
            result = PatchResult.from_error("patch", target, e)
        else:
            result = PatchResult(
                ok=True,
                action="patch",
                target=target,
                elevated=outcome.elevated,
                already_patched=outcome.already_patched,
                stdout=outcome.stdout,
                stderr=outcome.stderr,
                backup=outcome.backup.backup_file if outcome.backup else None,
            )
            _prune_quietly(executor.backups, target, ctx.keep_backups)

    result.duration_ms = _elapsed_ms(start)
    _audit(ctx, result)
    return result


def restore(
    artifact_path: ArtifactRef,
    *,
    context: PatchContext | None = None,
    settings: Settings | None = None,
    adapter: PlatformAdapter | None = None,
    require_patched: bool = False,
) -> PatchResult:
    """Restore the jar at ``artifact_path`` from its newest backup.

    With ``require_patched`` an unpatched jar is refused with
    ``not_patched``; by default restoring is allowed whenever a backup
    exists.
    """
    start = time.monotonic()
    target = _target_path(artifact_path)
    try:
        ctx = context or build_context(settings)
    except ConfigError as e:
        return PatchResult(ok=False, action="restore", target=target,
                           error_kind="config_error", error=str(e))
    adapter = adapter or adapter_for(ctx)

    with _target_lock(target):
        try:
            if require_patched and not is_patched(target):
                raise NotPatched(path=target)
            outcome = RestoreExecutor(ctx, adapter).execute(target)
        except PatchError as e:
            logger.warning("Restore of %s failed: %s", target, e)
            result = PatchResult.from_error("restore", target, e)
        else:
            result = PatchResult(
                ok=True,
                action="restore",
                target=target,
                elevated=outcome.elevated,
                backup=outcome.backup_file,
            )

    result.duration_ms = _elapsed_ms(start)
    _audit(ctx, result)
    return result


def is_patched(artifact_path: ArtifactRef) -> bool:
    """Whether the patch marker exists. No other check is made."""
    return TargetArtifact(path=_target_path(artifact_path)).is_patched


def has_backup(
    artifact_path: ArtifactRef,
    *,
    context: PatchContext | None = None,
    settings: Settings | None = None,
) -> bool:
    """Whether a restore could find something to restore from.

    Raises:
        ConfigError: If no context is given and the config is invalid.
    """
    target = _target_path(artifact_path)
    if has_simple_backup(target):
        return True
    ctx = context or build_context(settings)
    return BackupManager(ctx.cache_root).has_backup(target)


def get_status(
    artifact_path: ArtifactRef,
    *,
    context: PatchContext | None = None,
    settings: Settings | None = None,
    adapter: PlatformAdapter | None = None,
    runner: Callable[..., dict[str, Any]] = run_subprocess,
) -> StatusResult:
    """Read-only report on one jar, its backups, Java and the patcher cache."""
    target = _target_path(artifact_path)
    try:
        ctx = context or build_context(settings)
    except ConfigError as e:
        return StatusResult(target=target, error=str(e))
    adapter = adapter or adapter_for(ctx)

    status = StatusResult(
        target=target,
        exists=target.is_file(),
        patched=is_patched(target),
        writable=adapter.can_write(target),
        elevation_available=adapter.is_available(ctx),
        adapter=adapter.name,
        simple_backup=has_simple_backup(target),
        backups=BackupManager(ctx.cache_root).list_backups(target),
        patcher=patcher_status(ctx),
    )
    status.java = find_java(ctx, target, runner=runner)
    if status.java is not None:
        status.java_version = describe_java(ctx, status.java, runner=runner)
    return status


# ── Backup operations ───────────────────────────────────────────


def create_backup(
    artifact_path: ArtifactRef,
    *,
    context: PatchContext | None = None,
    settings: Settings | None = None,
) -> PatchResult:
    """Take a namespaced snapshot now, outside of a patch."""
    start = time.monotonic()
    target = _target_path(artifact_path)
    try:
        ctx = context or build_context(settings)
    except ConfigError as e:
        return PatchResult(ok=False, action="backup", target=target,
                           error_kind="config_error", error=str(e))

    with _target_lock(target):
        try:
            record = BackupManager(ctx.cache_root).create_backup(target)
        except PatchError as e:
            result = PatchResult.from_error("backup", target, e)
        except OSError as e:
            result = PatchResult(ok=False, action="backup", target=target,
                                 error_kind="io_error", error=f"backup failed: {e}")
        else:
            result = PatchResult(ok=True, action="backup", target=target,
                                 backup=record.backup_file)

    result.duration_ms = _elapsed_ms(start)
    _audit(ctx, result)
    return result


def list_backups(
    artifact_path: ArtifactRef,
    *,
    context: PatchContext | None = None,
    settings: Settings | None = None,
) -> list[BackupRecord]:
    """All namespaced backups for the jar, newest first, each verified.

    Raises:
        ConfigError: If no context is given and the config is invalid.
    """
    ctx = context or build_context(settings)
    return BackupManager(ctx.cache_root).list_backups(_target_path(artifact_path))


def prune_backups(
    artifact_path: ArtifactRef,
    keep: int | None = None,
    *,
    context: PatchContext | None = None,
    settings: Settings | None = None,
) -> list[Path]:
    """Drop old snapshots, keeping ``keep`` (default: configured ``keep_backups``).

    Raises:
        ConfigError: If no context is given and the config is invalid.
        OSError: If a backup file cannot be deleted.
    """
    ctx = context or build_context(settings)
    target = _target_path(artifact_path)
    with _target_lock(target):
        removed = BackupManager(ctx.cache_root).prune(target, keep or ctx.keep_backups)
    if removed:
        AuditWriter(ctx.audit_path).write(AuditEntry(
            operation="prune",
            target=str(target),
            status="ok",
            context={"removed": [str(p) for p in removed]},
        ))
    return removed


def _prune_quietly(backups: BackupManager, target: Path, keep: int) -> None:
    try:
        backups.prune(target, keep)
    except OSError as e:
        logger.warning("Could not prune old backups of %s: %s", target, e)
