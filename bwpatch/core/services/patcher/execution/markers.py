"""
L4 Execution — Patch marker writes.

The marker's existence is the whole patched-state. It is written to a
temp file in the same directory and renamed into place, so a crash
never leaves a half-written marker behind.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from bwpatch.core.services.patcher.data.constants import MARKER_CONTENT

logger = logging.getLogger(__name__)


def write_marker(path: Path) -> None:
    """Create the marker atomically.

    Raises:
        OSError: If the directory is not writable.
    """
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".marker_", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(MARKER_CONTENT)
        os.replace(tmp, path)
        logger.debug("Marker written: %s", path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


def remove_marker(path: Path) -> bool:
    """Remove the marker if present. Returns whether one was removed.

    Raises:
        OSError: If the marker exists but cannot be removed.
    """
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    logger.debug("Marker removed: %s", path)
    return True
