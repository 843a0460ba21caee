"""
L4 Execution — Patcher acquisition and checksum pinning.

The patcher jar is downloaded with whichever transfer program is
installed (curl first, then wget), written to a ``.part`` file, and
moved into the cache only after its SHA-256 matches the pinned value.
An unverified file is never returned and never left in the cache.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from bwpatch.core.context import PatchContext
from bwpatch.core.models.artifact import PatcherArtifact
from bwpatch.core.services.patcher.data.constants import TRANSFER_PROGRAMS
from bwpatch.core.services.patcher.domain.errors import ChecksumMismatch, DownloadFailed
from bwpatch.core.services.patcher.execution.checksum import calculate_checksum
from bwpatch.core.services.patcher.execution.subprocess_runner import (
    find_program,
    run_subprocess,
)
from bwpatch.core.services.patcher.execution.temp_files import remove_quietly

logger = logging.getLogger(__name__)


def ensure_patcher_available(
    ctx: PatchContext,
    artifact: PatcherArtifact | None = None,
) -> Path:
    """Return the path of a verified patcher jar, downloading if needed.

    Raises:
        DownloadFailed: No transfer program, or the transfer failed.
        ChecksumMismatch: The downloaded file does not match the pin.
    """
    artifact = artifact or PatcherArtifact.pinned(ctx.cache_root)
    path = artifact.cache_path

    if path.exists():
        logger.debug("Checking cached patcher at %s", path)
        if _verify_or_discard(path, artifact.sha256):
            return path
        logger.warning("Cached patcher failed verification, re-downloading")

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DownloadFailed(f"Cannot create cache directory: {e}", path=path.parent) from e

    part = path.with_name(path.name + ".part")
    remove_quietly(part)

    cmd = _transfer_command(artifact.url, part, ctx)
    logger.info("Downloading patcher with %s", Path(cmd[0]).name)
    result = run_subprocess(cmd, timeout=ctx.timeouts.download, env=ctx.env)

    if not result["ok"]:
        remove_quietly(part)
        reason = (result.get("stderr") or "").strip() or result.get("error", "unknown error")
        logger.error("Patcher download failed: %s", reason)
        raise DownloadFailed(reason, path=path)

    if not part.is_file():
        raise DownloadFailed("transfer reported success but produced no file", path=path)

    if not _verify_or_discard(part, artifact.sha256):
        raise ChecksumMismatch(
            f"Downloaded patcher does not match pinned checksum {artifact.sha256}",
            path=path,
        )

    os.replace(part, path)
    logger.info("Patcher cached at %s", path)
    return path


def patcher_status(ctx: PatchContext, artifact: PatcherArtifact | None = None) -> dict[str, Any]:
    """Report the cache state without downloading anything."""
    artifact = artifact or PatcherArtifact.pinned(ctx.cache_root)
    path = artifact.cache_path
    status: dict[str, Any] = {
        "path": str(path),
        "url": artifact.url,
        "expected_sha256": artifact.sha256,
        "cached": path.is_file(),
        "verified": False,
    }
    if status["cached"]:
        try:
            status["verified"] = calculate_checksum(path) == artifact.sha256
        except OSError as e:
            status["error"] = str(e)
    return status


def available_transfer_program(ctx: PatchContext) -> str | None:
    """Name of the first installed transfer program, if any."""
    for name, _args in TRANSFER_PROGRAMS:
        if find_program(name, ctx.env):
            return name
    return None


def _transfer_command(url: str, dest: Path, ctx: PatchContext) -> list[str]:
    for name, args in TRANSFER_PROGRAMS:
        exe = find_program(name, ctx.env)
        if exe:
            return [exe] + [a.format(url=url, dest=str(dest)) for a in args]
    logger.error("No transfer program available (tried curl, wget)")
    raise DownloadFailed("Neither curl nor wget available")


def _verify_or_discard(path: Path, expected: str) -> bool:
    """Verify ``path``; delete it when it does not match."""
    try:
        actual = calculate_checksum(path)
    except OSError as e:
        logger.warning("Cannot read %s: %s", path, e)
        remove_quietly(path)
        return False

    if actual != expected:
        logger.warning("Checksum mismatch for %s: expected %s got %s", path, expected, actual)
        remove_quietly(path)
        return False

    logger.debug("Checksum verified: %s", path)
    return True
