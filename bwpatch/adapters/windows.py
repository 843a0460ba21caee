"""
Windows adapter — PowerShell ``Start-Process -Verb RunAs`` (UAC).
"""

from __future__ import annotations

import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from bwpatch.adapters.base import Outcome, PlatformAdapter
from bwpatch.core.context import PatchContext
from bwpatch.core.services.patcher.data.constants import (
    MARKER_CONTENT,
    SCRIPT_CHECKSUM_EXIT,
    WINDOWS_UAC_CANCELLED_CODE,
)
from bwpatch.core.services.patcher.domain.input_validation import quote_powershell
from bwpatch.core.services.patcher.execution.subprocess_runner import find_program

_VERIFY_AND_COPY = f"""\
if (-not (Test-Path -LiteralPath $BackupPath)) {{
    [Console]::Error.WriteLine("Backup not found: $BackupPath")
    exit 1
}}
if (-not (Test-Path -LiteralPath $ChecksumPath)) {{
    [Console]::Error.WriteLine("Checksum missing for $BackupPath")
    exit {SCRIPT_CHECKSUM_EXIT}
}}
$Expected = ((Get-Content -LiteralPath $ChecksumPath -Raw).Trim() -split '\\s+')[0].ToLower()
$Actual = (Get-FileHash -LiteralPath $BackupPath -Algorithm SHA256).Hash.ToLower()
if ($Expected -ne $Actual) {{
    [Console]::Error.WriteLine("Checksum mismatch for $BackupPath")
    exit {SCRIPT_CHECKSUM_EXIT}
}}
Copy-Item -LiteralPath $BackupPath -Destination $TargetPath -Force
if (Test-Path -LiteralPath $MarkerPath) {{
    Remove-Item -LiteralPath $MarkerPath -Force
}}
Write-Output "Restored successfully"
"""


class WindowsAdapter(PlatformAdapter):
    """Elevation through a UAC prompt raised by PowerShell."""

    @property
    def name(self) -> str:
        return "windows"

    @property
    def script_suffix(self) -> str:
        return ".ps1"

    def _can_write_dir(self, directory: Path) -> bool:
        # os.access ignores ACLs on Windows; only a real create is reliable
        try:
            with tempfile.TemporaryFile(dir=directory):
                return True
        except OSError:
            return False

    def is_available(self, ctx: PatchContext) -> bool:
        return find_program("powershell", ctx.env) is not None

    def elevation_command(self, script_path: Path, ctx: PatchContext) -> list[str]:
        # Start-Process joins ArgumentList with spaces, so the path needs inner quotes
        script_arg = self.quote(f'"{script_path}"', "script path")
        command = (
            "$p = Start-Process -FilePath 'powershell' "
            "-ArgumentList '-NoProfile','-ExecutionPolicy','Bypass','-File',"
            f"{script_arg} -Verb RunAs -Wait -PassThru -WindowStyle Hidden; "
            "exit $p.ExitCode"
        )
        return ["powershell", "-NoProfile", "-NonInteractive", "-Command", command]

    def classify(self, result: Mapping[str, Any]) -> Outcome:
        if result.get("ok"):
            return "ok"
        stderr = (result.get("stderr") or "").lower()
        if (
            result.get("returncode") == WINDOWS_UAC_CANCELLED_CODE
            or "canceled" in stderr
            or "cancelled" in stderr
        ):
            return "cancelled"
        return "failed"

    # ── Scripts ─────────────────────────────────────────────────

    def quote(self, value: str, label: str = "value") -> str:
        return quote_powershell(value, label)

    def _preamble(self, env: Mapping[str, str]) -> str:
        lines = ["$ErrorActionPreference = 'Stop'"]
        for key, value in env.items():
            lines.append(f"$env:{key} = {self.quote(value, key)}")
        return "\n".join(lines) + "\n"

    def _marker_line(self, marker: Path) -> str:
        return (
            f"Set-Content -LiteralPath {self.quote(str(marker), 'marker path')} "
            f"-Value {self.quote(MARKER_CONTENT)} -NoNewline\n"
        )

    def render_copy_patched_script(
        self, staged: Path, target: Path, marker: Path, env: Mapping[str, str],
    ) -> str:
        src = self.quote(str(staged), "staged path")
        dst = self.quote(str(target), "target path")
        return (
            self._preamble(env)
            + f"Copy-Item -LiteralPath {src} -Destination {dst} -Force\n"
            + self._marker_line(marker)
        )

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
            f"$BackupPath = {self.quote(str(backup), 'backup path')}\n"
            f"$ChecksumPath = {self.quote(str(checksum_file), 'checksum path')}\n"
            f"$TargetPath = {self.quote(str(target), 'target path')}\n"
            f"$MarkerPath = {self.quote(str(marker), 'marker path')}\n"
        )
        return self._preamble(env) + assignments + _VERIFY_AND_COPY
