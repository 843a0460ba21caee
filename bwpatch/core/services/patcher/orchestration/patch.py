"""
L5 Orchestration — Patch Executor.

    Unpatched ──► Patching ──► Patched
                     │
                     └──────► Failed   (no marker)

Sequence: existence → marker → backup → Java → patcher → privilege
decision → tool run (direct, or staged + elevated copy-back) → marker.

Everything side-effecting is delegated: snapshots to the Backup
Manager, elevation to the platform adapter, the tool run to the
subprocess runner. This module only decides.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from bwpatch.adapters.base import PlatformAdapter
from bwpatch.core.context import PatchContext
from bwpatch.core.models.artifact import BackupRecord, ElevationRequest, TargetArtifact
from bwpatch.core.models.receipt import Receipt
from bwpatch.core.services.patcher.detection.java_runtime import find_java
from bwpatch.core.services.patcher.domain.errors import (
    AlreadyPatched,
    ElevationCancelled,
    ElevationFailed,
    JarNotFound,
    JavaNotFound,
    PermissionDenied,
    StepFailed,
    ToolExecutionFailed,
)
from bwpatch.core.services.patcher.domain.output_parsing import reports_already_patched
from bwpatch.core.services.patcher.execution.backup import (
    BackupManager,
    create_simple_backup,
)
from bwpatch.core.services.patcher.execution.download import ensure_patcher_available
from bwpatch.core.services.patcher.execution.markers import write_marker
from bwpatch.core.services.patcher.execution.subprocess_runner import run_subprocess
from bwpatch.core.services.patcher.execution.temp_files import remove_quietly, stage_copy
from bwpatch.core.services.patcher.orchestration.policies import (
    BackupPolicy,
    get_backup_policy,
)

logger = logging.getLogger(__name__)

Runner = Callable[..., dict[str, Any]]


@dataclass
class PatchOutcome:
    """What a successful patch run did."""

    target: Path
    elevated: bool = False
    already_patched: bool = False
    backup: BackupRecord | None = None
    java: Path | None = None
    stdout: str = ""
    stderr: str = ""


def tool_command(java: Path, patcher: Path, target: Path, identity: dict[str, str]) -> list[str]:
    """The patcher command line, with the caller's identity made explicit."""
    home = identity["HOME"]
    return [
        str(java),
        f"-Duser.home={home}",
        f"-Duser.name={identity['USER']}",
        f"-Duser.dir={home}",
        "-jar",
        str(patcher),
        str(target),
    ]


def raise_for_receipt(receipt: Receipt, target: Path) -> None:
    """Translate a non-ok elevation receipt into the matching error."""
    if receipt.ok:
        return
    if receipt.cancelled:
        raise ElevationCancelled(path=target)
    raise ElevationFailed(receipt.error or "", stdout=receipt.output, path=target)


class PatchExecutor:
    """Patch one jar in place, elevating only when the live probe says so.

    Collaborators are injectable so tests can run the whole sequence
    without Java, network or a real elevation prompt.
    """

    def __init__(
        self,
        ctx: PatchContext,
        adapter: PlatformAdapter,
        *,
        backups: BackupManager | None = None,
        policy: BackupPolicy | None = None,
        runner: Runner = run_subprocess,
        java_finder: Callable[..., Path | None] = find_java,
        acquire: Callable[[PatchContext], Path] = ensure_patcher_available,
    ):
        self.ctx = ctx
        self.adapter = adapter
        self.backups = backups or BackupManager(ctx.cache_root)
        self.policy = policy or get_backup_policy(ctx.backup_policy)
        self._runner = runner
        self._java_finder = java_finder
        self._acquire = acquire

    def execute(self, target: Path) -> PatchOutcome:
        """Run the full patch sequence.

        Raises:
            JarNotFound, AlreadyPatched, PermissionDenied, JavaNotFound,
            DownloadFailed, ChecksumMismatch, ToolExecutionFailed,
            ElevationCancelled, ElevationFailed, InvalidInput, StepFailed.
        """
        artifact = TargetArtifact(path=target)
        if not artifact.exists:
            raise JarNotFound(target)
        if artifact.is_patched:
            raise AlreadyPatched(path=target)

        direct = self.adapter.can_write(target)
        outcome = PatchOutcome(target=target, elevated=not direct)
        outcome.backup = self._backup(artifact, direct)

        java = self._java_finder(self.ctx, target, runner=self._runner)
        if java is None:
            raise JavaNotFound(path=target)
        outcome.java = java

        try:
            patcher = self._acquire(self.ctx)
        except OSError as e:
            raise StepFailed("acquire patcher", e) from e

        if not direct and not self.adapter.is_available(self.ctx):
            logger.error("%s is not writable and no elevation mechanism is available", target)
            raise PermissionDenied(path=target)

        # Identity is validated before anything is staged or rendered
        identity = self.ctx.validated_identity()

        if direct:
            self._patch_direct(artifact, java, patcher, identity, outcome)
        else:
            self._patch_elevated(artifact, java, patcher, identity, outcome)
        return outcome

    # ── Steps ───────────────────────────────────────────────────

    def _backup(self, artifact: TargetArtifact, direct: bool) -> BackupRecord | None:
        record = None
        try:
            record = self.backups.create_backup(artifact.path)
        except OSError as e:
            self.policy.on_failure(e)

        # The fixed-name backup lives next to the jar, so only when we can write there
        if direct and self.adapter.can_write(artifact.simple_backup):
            try:
                create_simple_backup(artifact.path)
            except OSError as e:
                logger.warning("Simple backup failed: %s", e)
        return record

    def _run_tool(
        self, java: Path, patcher: Path, jar: Path, identity: dict[str, str],
    ) -> dict[str, Any]:
        logger.info("Running patcher on %s", jar)
        result = self._runner(
            tool_command(java, patcher, jar, identity),
            timeout=self.ctx.timeouts.tool,
            env=self.ctx.env,
        )
        stdout, stderr = result.get("stdout", ""), result.get("stderr", "")
        if not result.get("ok"):
            logger.error("Patcher failed on %s: %s", jar, stderr.strip() or result.get("error"))
            raise ToolExecutionFailed(
                stdout, stderr, reason=result.get("error", ""), path=jar,
            )
        logger.debug("Patcher output: %s", stdout.strip())
        return result

    def _patch_direct(
        self,
        artifact: TargetArtifact,
        java: Path,
        patcher: Path,
        identity: dict[str, str],
        outcome: PatchOutcome,
    ) -> None:
        result = self._run_tool(java, patcher, artifact.path, identity)
        outcome.stdout, outcome.stderr = result["stdout"], result["stderr"]

        if reports_already_patched(outcome.stdout, outcome.stderr):
            logger.info("Patcher reports %s already patched", artifact.path)
            outcome.already_patched = True
            return

        if self.adapter.can_write(artifact.marker):
            try:
                write_marker(artifact.marker)
            except OSError as e:
                raise StepFailed("write marker", e, path=artifact.marker) from e
        else:
            self._elevated_marker(artifact, identity, outcome)
        logger.info("Patched %s", artifact.path)

    def _elevated_marker(
        self, artifact: TargetArtifact, identity: dict[str, str], outcome: PatchOutcome,
    ) -> None:
        if not self.adapter.is_available(self.ctx):
            raise PermissionDenied(
                f"Cannot write marker {artifact.marker} without elevation",
                path=artifact.marker,
            )
        script = self.adapter.render_marker_script(artifact.marker, identity)
        receipt = self.adapter.run_elevated(
            ElevationRequest(name="marker", script=script, env=identity, target=artifact.path),
            self.ctx,
        )
        raise_for_receipt(receipt, artifact.path)
        outcome.elevated = True

    def _patch_elevated(
        self,
        artifact: TargetArtifact,
        java: Path,
        patcher: Path,
        identity: dict[str, str],
        outcome: PatchOutcome,
    ) -> None:
        try:
            staged = stage_copy(artifact.path, self.ctx.temp_dir)
        except OSError as e:
            raise StepFailed("stage target", e, path=artifact.path) from e

        try:
            result = self._run_tool(java, patcher, staged, identity)
            outcome.stdout, outcome.stderr = result["stdout"], result["stderr"]

            if reports_already_patched(outcome.stdout, outcome.stderr):
                logger.info("Patcher reports %s already patched", artifact.path)
                outcome.already_patched = True
                return

            script = self.adapter.render_copy_patched_script(
                staged, artifact.path, artifact.marker, identity,
            )
            receipt = self.adapter.run_elevated(
                ElevationRequest(name="patch", script=script, env=identity, target=artifact.path),
                self.ctx,
            )
            raise_for_receipt(receipt, artifact.path)
        finally:
            remove_quietly(staged)
        logger.info("Patched %s with elevation", artifact.path)
