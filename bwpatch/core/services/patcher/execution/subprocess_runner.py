"""
L4 Execution — Core subprocess runner.

The SINGLE PLACE where ``subprocess.run`` is called for patch
operations: Java probes, transfer programs, the patcher itself and
the elevation helpers all go through here. Every call has a timeout.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)


def run_subprocess(
    cmd: list[str],
    *,
    timeout: int = 120,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
) -> dict[str, Any]:
    """Run a command, capture its output, never raise.

    Args:
        cmd: Command list for ``subprocess.run()`` (never a shell string).
        timeout: Seconds before the child is killed.
        env: Full environment for the child; None inherits ours.
        cwd: Working directory for the command.

    Returns:
        ``{"ok": True, "returncode": 0, "stdout": ..., "stderr": ..., "elapsed_ms": N}``
        on success; on failure ``ok`` is False and ``error`` describes why.
        stdout/stderr are returned in full.
    """
    logger.debug("Running: %s", cmd)
    start = time.monotonic()
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
            env=dict(env) if env is not None else None,
            cwd=cwd,
        )
    except subprocess.TimeoutExpired as e:
        return {
            "ok": False,
            "returncode": None,
            "timed_out": True,
            "stdout": _as_text(e.stdout),
            "stderr": _as_text(e.stderr),
            "error": f"Command timed out ({timeout}s)",
        }
    except OSError as e:
        logger.debug("Cannot start %s: %s", cmd[0] if cmd else "?", e)
        return {
            "ok": False,
            "returncode": None,
            "stdout": "",
            "stderr": "",
            "error": str(e),
        }

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = result.stdout or ""
    stderr = result.stderr or ""

    if result.returncode == 0:
        return {
            "ok": True,
            "returncode": 0,
            "stdout": stdout,
            "stderr": stderr,
            "elapsed_ms": elapsed_ms,
        }

    return {
        "ok": False,
        "returncode": result.returncode,
        "stdout": stdout,
        "stderr": stderr,
        "error": f"Command failed (exit {result.returncode})",
        "elapsed_ms": elapsed_ms,
    }


def find_program(name: str, env: Mapping[str, str] | None = None) -> str | None:
    """Resolve ``name`` on the PATH of ``env`` (or ours)."""
    path = env.get("PATH") if env is not None else None
    return shutil.which(name, path=path)


def _as_text(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data
