"""
L1 Domain — Patcher output interpretation (pure).
"""

from __future__ import annotations

from bwpatch.core.services.patcher.data.constants import ALREADY_PATCHED_MARKERS


def reports_already_patched(stdout: str, stderr: str) -> bool:
    """Whether the patcher says the jar already carries its patch.

    The tool is authoritative over local marker state: when it says so,
    the operation is a success even if no marker exists locally.
    """
    combined = f"{stdout}\n{stderr}".lower()
    return any(marker in combined for marker in ALREADY_PATCHED_MARKERS)
