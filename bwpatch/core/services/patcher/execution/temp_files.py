"""
L4 Execution — Private temp scripts and staging files.

Elevation scripts and staging jars live in a per-app directory with
owner-only permissions. Names carry a nanosecond id so that
operations on different targets never collide; nothing here protects
one target against concurrent access.
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
import time
from pathlib import Path

logger = logging.getLogger(__name__)


def unique_id() -> int:
    return time.time_ns()


def private_dir(temp_dir: Path) -> Path:
    """Create ``temp_dir`` (if needed) and restrict it to the owner.

    Scripts written here run as root, so a directory that is a symlink,
    belongs to another user or stays open to group/other is refused.

    Raises:
        PermissionError: If the directory cannot be made private.
    """
    temp_dir.mkdir(parents=True, exist_ok=True)
    if os.name == "nt":
        return temp_dir

    st = os.lstat(temp_dir)
    if stat.S_ISLNK(st.st_mode) or not stat.S_ISDIR(st.st_mode):
        raise PermissionError(f"Refusing temp dir {temp_dir}: not a plain directory")
    if st.st_uid != os.getuid():
        raise PermissionError(
            f"Refusing temp dir {temp_dir}: owned by uid {st.st_uid}, not {os.getuid()}"
        )
    if stat.S_IMODE(st.st_mode) & 0o077:
        os.chmod(temp_dir, 0o700)
        if stat.S_IMODE(os.lstat(temp_dir).st_mode) & 0o077:
            raise PermissionError(f"Refusing temp dir {temp_dir}: still accessible to others")
    return temp_dir


def write_private_script(temp_dir: Path, prefix: str, content: str, suffix: str) -> Path:
    """Write ``content`` to a new owner-only file and return its path.

    The file is created exclusively (``O_EXCL``) with mode 0700, so it is
    never readable by other users, not even between create and chmod.
    """
    directory = private_dir(temp_dir)
    path = directory / f"{prefix}-{unique_id()}{suffix}"
    flags = os.O_WRONLY | os.O_CREAT | os.O_EXCL | getattr(os, "O_BINARY", 0)
    fd = os.open(path, flags, 0o700)
    with os.fdopen(fd, "wb") as f:
        # Windows PowerShell 5 reads BOM-less files as ANSI
        if suffix == ".ps1":
            f.write(b"\xef\xbb\xbf")
        f.write(content.encode("utf-8"))
    logger.debug("Wrote private script %s", path)
    return path


def stage_copy(source: Path, temp_dir: Path, prefix: str = "stage") -> Path:
    """Copy ``source`` into a user-writable staging file."""
    directory = private_dir(temp_dir)
    staged = directory / f"{prefix}-{unique_id()}{source.suffix}"
    shutil.copyfile(source, staged)
    return staged


def remove_quietly(path: Path | None) -> None:
    """Best-effort delete; a leaked temp file is not an error."""
    if path is None:
        return
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.debug("Could not remove %s: %s", path, e)
