"""
POSIX adapter — pkexec + bash (Linux, macOS with polkit installed).
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from bwpatch.adapters.base import Outcome, PlatformAdapter
from bwpatch.core.context import PatchContext
from bwpatch.core.services.patcher.data.constants import (
    MARKER_CONTENT,
    PKEXEC_DISMISSED_CODE,
    SCRIPT_CHECKSUM_EXIT,
)
from bwpatch.core.services.patcher.domain.input_validation import quote_posix
from bwpatch.core.services.patcher.execution.subprocess_runner import find_program

_VERIFY_AND_COPY = f"""\
if [ ! -f "$BACKUP_PATH" ]; then
    echo "Backup not found: $BACKUP_PATH" >&2
    exit 1
fi
if [ ! -f "$CHECKSUM_PATH" ]; then
    echo "Checksum missing for $BACKUP_PATH" >&2
    exit {SCRIPT_CHECKSUM_EXIT}
fi
EXPECTED=$(cut -d' ' -f1 < "$CHECKSUM_PATH" | tr -d '[:space:]' | tr 'A-F' 'a-f')
if command -v sha256sum >/dev/null 2>&1; then
    ACTUAL=$(sha256sum "$BACKUP_PATH" | cut -d' ' -f1)
else
    ACTUAL=$(shasum -a 256 "$BACKUP_PATH" | cut -d' ' -f1)
fi
if [ "$EXPECTED" != "$ACTUAL" ]; then
    echo "Checksum mismatch for $BACKUP_PATH" >&2
    exit {SCRIPT_CHECKSUM_EXIT}
fi
cp "$BACKUP_PATH" "$TARGET_PATH"
rm -f "$MARKER_PATH"
echo "Restored successfully"
"""


class PosixAdapter(PlatformAdapter):
    """Elevation through ``pkexec bash <script>``."""

    @property
    def name(self) -> str:
        return "posix"

    @property
    def script_suffix(self) -> str:
        return ".sh"

    def _can_write_dir(self, directory: Path) -> bool:
        return directory.is_dir() and os.access(directory, os.W_OK | os.X_OK)

    def is_available(self, ctx: PatchContext) -> bool:
        return find_program("pkexec", ctx.env) is not None

    def elevation_command(self, script_path: Path, ctx: PatchContext) -> list[str]:
        pkexec = find_program("pkexec", ctx.env) or "pkexec"
        bash = find_program("bash", ctx.env) or "/bin/bash"
        return [pkexec, bash, str(script_path)]

    def classify(self, result: Mapping[str, Any]) -> Outcome:
        if result.get("ok"):
            return "ok"
        stderr = (result.get("stderr") or "").lower()
        if result.get("returncode") == PKEXEC_DISMISSED_CODE or "dismissed" in stderr:
            return "cancelled"
        return "failed"

    # ── Scripts ─────────────────────────────────────────────────

    def quote(self, value: str, label: str = "value") -> str:
        return quote_posix(value, label)

    def _preamble(self, env: Mapping[str, str]) -> str:
        lines = ["#!/bin/bash", "set -e"]
        for key, value in env.items():
            lines.append(f"export {key}={self.quote(value, key)}")
        return "\n".join(lines) + "\n"

    def _marker_line(self, marker: Path) -> str:
        return f"printf '%s' {self.quote(MARKER_CONTENT)} > {self.quote(str(marker), 'marker path')}\n"

    def render_copy_patched_script(
        self, staged: Path, target: Path, marker: Path, env: Mapping[str, str],
    ) -> str:
        src = self.quote(str(staged), "staged path")
        dst = self.quote(str(target), "target path")
        return self._preamble(env) + f"cp {src} {dst}\n" + self._marker_line(marker)

    def render_marker_script(self, marker: Path, env: Mapping[str, str]) -> str:
        return self._preamble(env) + self._marker_line(marker)

    def render_restore_script(
        self,
        backup: Path,
        checksum_file: Path,
        target: Path,
        marker: Path,
        env: Mapping[str, str],
    ) -> str:
        assignments = (
            f"BACKUP_PATH={self.quote(str(backup), 'backup path')}\n"
            f"CHECKSUM_PATH={self.quote(str(checksum_file), 'checksum path')}\n"
            f"TARGET_PATH={self.quote(str(target), 'target path')}\n"
            f"MARKER_PATH={self.quote(str(marker), 'marker path')}\n"
        )
        return self._preamble(env) + assignments + _VERIFY_AND_COPY
