"""
L1 Domain — Error taxonomy for patch and restore operations.

Every failure the subsystem reports is a ``PatchError``. Each class
carries a stable ``kind`` string so callers (CLI, GUI bridge, audit
ledger) can branch on the category without importing the classes.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any


class PatchError(Exception):
    """Base class for all patch subsystem failures."""

    kind: str = "error"
    default_message: str = "Patch operation failed"

    def __init__(self, message: str | None = None, *, path: Path | None = None):
        self.path = path
        super().__init__(message or self.default_message)

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable view of the error."""
        data: dict[str, Any] = {"kind": self.kind, "error": str(self)}
        if self.path is not None:
            data["path"] = str(self.path)
        return data


# ── Not found ────────────────────────────────────────────────────


class NotFound(PatchError):
    kind = "not_found"
    default_message = "Not found"


class JarNotFound(NotFound):
    kind = "jar_not_found"

    def __init__(self, path: Path):
        super().__init__(f"JAR file not found: {path}", path=path)


class BackupNotFound(NotFound):
    kind = "backup_not_found"

    def __init__(self, path: Path):
        super().__init__(f"Backup not found: {path}", path=path)


# ── Marker state ─────────────────────────────────────────────────


class AlreadyPatched(PatchError):
    kind = "already_patched"
    default_message = "JAR is already patched"


class NotPatched(PatchError):
    kind = "not_patched"
    default_message = "JAR is not patched"


# ── Integrity ────────────────────────────────────────────────────


class ChecksumMismatch(PatchError):
    kind = "checksum_mismatch"
    default_message = "Checksum mismatch"


# ── Privileges ───────────────────────────────────────────────────


class PermissionDenied(PatchError):
    kind = "permission_denied"
    default_message = "Permission denied - requires elevated privileges"


class ElevationCancelled(PatchError):
    """The user dismissed the elevation prompt.

    Kept apart from ``ElevationFailed`` so callers can show a neutral
    message instead of an error.
    """

    kind = "elevation_cancelled"
    default_message = "Elevation cancelled by user"


class ElevationFailed(PatchError):
    kind = "elevation_failed"

    def __init__(self, stderr: str = "", *, stdout: str = "", path: Path | None = None):
        self.stderr = stderr
        self.stdout = stdout
        detail = stderr.strip() or stdout.strip() or "no output"
        super().__init__(f"Elevated command failed: {detail}", path=path)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["stdout"] = self.stdout
        data["stderr"] = self.stderr
        return data


# ── Dependencies ─────────────────────────────────────────────────


class MissingDependency(PatchError):
    kind = "missing_dependency"
    default_message = "A required external dependency is missing"


class JavaNotFound(MissingDependency):
    kind = "java_not_found"
    default_message = "Java not found - please install Java Runtime Environment"


class DownloadFailed(PatchError):
    kind = "download_failed"

    def __init__(self, reason: str, *, path: Path | None = None):
        self.reason = reason
        super().__init__(f"Failed to download patcher: {reason}", path=path)


# ── Execution ────────────────────────────────────────────────────


class ToolExecutionFailed(PatchError):
    """The external patcher exited non-zero (or could not be run).

    ``stdout`` and ``stderr`` are the tool's full captured output: the
    patcher is the authority on whether a jar version is supported.
    """

    kind = "tool_execution_failed"

    def __init__(
        self,
        stdout: str = "",
        stderr: str = "",
        *,
        reason: str = "",
        path: Path | None = None,
    ):
        self.stdout = stdout
        self.stderr = stderr
        head = reason or "Patcher execution failed"
        super().__init__(f"{head}\nstdout: {stdout}\nstderr: {stderr}", path=path)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["stdout"] = self.stdout
        data["stderr"] = self.stderr
        return data


class StepFailed(PatchError):
    """An I/O error inside a named executor step."""

    kind = "io_error"

    def __init__(self, step: str, cause: BaseException, *, path: Path | None = None):
        self.step = step
        self.cause = cause
        super().__init__(f"{step} failed: {cause}", path=path)


class InvalidInput(PatchError):
    """A value destined for a generated script was rejected."""

    kind = "invalid_input"
    default_message = "Shell argument contains invalid characters"
