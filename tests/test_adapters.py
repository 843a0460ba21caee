"""
Tests for the platform adapters — write probes, script rendering,
elevation classification and the mock broker.
"""

import os
import shutil
import stat
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from bwpatch.adapters import (
    MockPlatformAdapter,
    PosixAdapter,
    WindowsAdapter,
    adapter_for,
)
from bwpatch.core.models.artifact import ElevationRequest
from bwpatch.core.models.receipt import Receipt
from bwpatch.core.services.patcher.domain.errors import InvalidInput
from bwpatch.core.services.patcher.execution.checksum import calculate_checksum
from bwpatch.core.services.patcher.execution.subprocess_runner import run_subprocess
from bwpatch.core.services.patcher.execution.temp_files import (
    private_dir,
    stage_copy,
    write_private_script,
)

posix_only = pytest.mark.skipif(os.name == "nt", reason="POSIX ownership")

IDENTITY = {"HOME": "/home/tester", "USER": "tester", "LOGNAME": "tester"}

needs_bash = pytest.mark.skipif(
    shutil.which("bash") is None
    or (shutil.which("sha256sum") is None and shutil.which("shasum") is None),
    reason="bash and sha256sum/shasum required",
)


def _result(ok=True, returncode=0, stdout="", stderr="", error=None):
    return {"ok": ok, "returncode": returncode, "stdout": stdout, "stderr": stderr, "error": error}


# ── Selection ────────────────────────────────────────────────────


class TestAdapterFor:
    def test_linux(self, ctx):
        assert isinstance(adapter_for(ctx), PosixAdapter)

    def test_darwin(self, ctx):
        assert isinstance(adapter_for(ctx.model_copy(update={"system": "darwin"})), PosixAdapter)

    def test_windows(self, ctx):
        assert isinstance(adapter_for(ctx.model_copy(update={"system": "windows"})), WindowsAdapter)


# ── Write probe ──────────────────────────────────────────────────


class TestCanWrite:
    def test_writable_file(self, jar: Path):
        assert PosixAdapter().can_write(jar)

    def test_missing_file_uses_parent(self, tmp_path: Path):
        assert PosixAdapter().can_write(tmp_path / "new.jar")

    def test_missing_parent(self, tmp_path: Path):
        assert not PosixAdapter().can_write(tmp_path / "nope" / "new.jar")

    @pytest.mark.skipif(os.name == "nt" or os.geteuid() == 0, reason="root bypasses permissions")
    def test_read_only_file(self, jar: Path):
        jar.chmod(stat.S_IRUSR)
        try:
            assert not PosixAdapter().can_write(jar)
        finally:
            jar.chmod(stat.S_IRUSR | stat.S_IWUSR)

    @pytest.mark.skipif(os.name == "nt" or os.geteuid() == 0, reason="root bypasses permissions")
    def test_read_only_dir(self, tmp_path: Path):
        locked = tmp_path / "locked"
        locked.mkdir()
        locked.chmod(stat.S_IRUSR | stat.S_IXUSR)
        try:
            assert not PosixAdapter().can_write(locked / "bitwig.patched")
        finally:
            locked.chmod(stat.S_IRWXU)

    def test_windows_probe_creates_nothing(self, tmp_path: Path):
        assert WindowsAdapter().can_write(tmp_path / "bitwig.patched")
        assert list(tmp_path.iterdir()) == []


# ── Script rendering ─────────────────────────────────────────────


class TestPosixScripts:
    def test_copy_patched(self):
        script = PosixAdapter().render_copy_patched_script(
            Path("/tmp/stage-1.jar"), Path("/opt/bw/bitwig.jar"), Path("/opt/bw/bitwig.patched"),
            IDENTITY,
        )
        assert script.startswith("#!/bin/bash\nset -e\n")
        assert "export HOME='/home/tester'" in script
        assert "cp '/tmp/stage-1.jar' '/opt/bw/bitwig.jar'" in script
        assert "printf '%s' 'patched' > '/opt/bw/bitwig.patched'" in script

    def test_quotes_escaped(self):
        script = PosixAdapter().render_marker_script(Path("/opt/it's/bitwig.patched"), {})
        assert "'/opt/it'\\''s/bitwig.patched'" in script

    def test_restore_assignments(self):
        script = PosixAdapter().render_restore_script(
            Path("/c/1.jar"), Path("/c/1.jar.sha256"), Path("/opt/bitwig.jar"),
            Path("/opt/bitwig.patched"), IDENTITY,
        )
        assert "BACKUP_PATH='/c/1.jar'" in script
        assert "CHECKSUM_PATH='/c/1.jar.sha256'" in script
        assert "exit 65" in script
        assert script.index("ACTUAL=") < script.index('cp "$BACKUP_PATH"')

    def test_env_injection_rejected(self):
        with pytest.raises(InvalidInput):
            PosixAdapter().render_marker_script(
                Path("/opt/bitwig.patched"), {"USER": "x'\nrm -rf /"},
            )

    def test_path_injection_rejected(self):
        with pytest.raises(InvalidInput):
            PosixAdapter().render_copy_patched_script(
                Path("/tmp/s.jar"), Path("/opt/evil\n/bitwig.jar"), Path("/opt/m"), {},
            )


class TestWindowsScripts:
    def test_copy_patched(self):
        script = WindowsAdapter().render_copy_patched_script(
            Path("C:/Temp/stage-1.jar"), Path("C:/Program Files/Bitwig Studio/bitwig.jar"),
            Path("C:/Program Files/Bitwig Studio/bitwig.patched"), IDENTITY,
        )
        assert script.startswith("$ErrorActionPreference = 'Stop'\n")
        assert "$env:USER = 'tester'" in script
        assert "Copy-Item -LiteralPath" in script
        assert "Set-Content -LiteralPath" in script

    def test_quotes_doubled(self):
        script = WindowsAdapter().render_marker_script(Path("C:/Users/O'Brien/bitwig.patched"), {})
        assert "O''Brien" in script

    def test_restore_verifies_first(self):
        script = WindowsAdapter().render_restore_script(
            Path("C:/c/1.jar"), Path("C:/c/1.jar.sha256"), Path("C:/bw/bitwig.jar"),
            Path("C:/bw/bitwig.patched"), {},
        )
        assert "Get-FileHash" in script
        assert script.index("Get-FileHash") < script.index("Copy-Item")
        assert "exit 65" in script

    def test_elevation_command(self, ctx, tmp_path: Path):
        cmd = WindowsAdapter().elevation_command(tmp_path / "patch-1.ps1", ctx)
        assert cmd[0] == "powershell"
        assert "-Verb RunAs" in cmd[-1]
        assert "exit $p.ExitCode" in cmd[-1]
        assert str(tmp_path / "patch-1.ps1") in cmd[-1]


# ── Classification ───────────────────────────────────────────────


class TestClassify:
    def test_posix(self):
        a = PosixAdapter()
        assert a.classify(_result()) == "ok"
        assert a.classify(_result(False, 126)) == "cancelled"
        assert a.classify(_result(False, 1, stderr="Request dismissed")) == "cancelled"
        assert a.classify(_result(False, 127, stderr="Not authorized")) == "failed"

    def test_windows(self):
        a = WindowsAdapter()
        assert a.classify(_result(False, 1223)) == "cancelled"
        assert a.classify(_result(False, 1, stderr="The operation was canceled by the user.")) == "cancelled"
        assert a.classify(_result(False, 1, stderr="Cancelled")) == "cancelled"
        assert a.classify(_result(False, 5, stderr="Access denied")) == "failed"


# ── run_elevated ─────────────────────────────────────────────────


class TestRunElevated:
    def _request(self):
        return ElevationRequest(name="patch", script="#!/bin/bash\necho hi\n")

    def test_success_and_script_removed(self, ctx):
        seen = {}

        def _runner(cmd, **kwargs):
            script = Path(cmd[-1])
            seen["existed"] = script.is_file()
            seen["content"] = script.read_text()
            seen["kwargs"] = kwargs
            return _result(stdout="done")

        receipt = PosixAdapter(runner=_runner).run_elevated(self._request(), ctx)
        assert receipt.ok
        assert receipt.output == "done"
        assert seen["existed"]
        assert "echo hi" in seen["content"]
        assert seen["kwargs"]["timeout"] == ctx.timeouts.elevation
        assert list(ctx.temp_dir.glob("patch-*.sh")) == []

    def test_cancelled(self, ctx):
        runner = MagicMock(return_value=_result(False, 126, stderr="Error executing command as another user: Request dismissed"))
        receipt = PosixAdapter(runner=runner).run_elevated(self._request(), ctx)
        assert receipt.cancelled
        assert list(ctx.temp_dir.iterdir()) == []

    def test_failed_carries_stderr(self, ctx):
        runner = MagicMock(return_value=_result(False, 1, stderr="cp: cannot stat\n"))
        receipt = PosixAdapter(runner=runner).run_elevated(self._request(), ctx)
        assert receipt.failed
        assert receipt.error == "cp: cannot stat"
        assert receipt.return_code == 1

    def test_timeout_is_failure(self, ctx):
        runner = MagicMock(return_value={
            "ok": False, "returncode": None, "stdout": "", "stderr": "",
            "error": "Command timed out (900s)", "timed_out": True,
        })
        receipt = PosixAdapter(runner=runner).run_elevated(self._request(), ctx)
        assert receipt.failed
        assert "timed out" in receipt.error

    def test_script_removed_when_runner_raises(self, ctx):
        runner = MagicMock(side_effect=RuntimeError("boom"))
        with pytest.raises(RuntimeError):
            PosixAdapter(runner=runner).run_elevated(self._request(), ctx)
        assert list(ctx.temp_dir.iterdir()) == []

    @posix_only
    def test_foreign_temp_dir_fails_before_running(self, ctx, monkeypatch):
        ctx.temp_dir.mkdir(parents=True)
        owner = ctx.temp_dir.stat().st_uid
        monkeypatch.setattr(os, "getuid", lambda: owner + 1)
        runner = MagicMock()

        receipt = PosixAdapter(runner=runner).run_elevated(self._request(), ctx)
        assert receipt.failed
        assert "Cannot write elevation script" in receipt.error
        runner.assert_not_called()
        assert list(ctx.temp_dir.iterdir()) == []

    def test_posix_command_shape(self, ctx, tmp_path: Path):
        cmd = PosixAdapter().elevation_command(tmp_path / "x.sh", ctx)
        assert Path(cmd[0]).name == "pkexec"
        assert Path(cmd[1]).name == "bash"
        assert cmd[2] == str(tmp_path / "x.sh")


# ── Temp files ───────────────────────────────────────────────────


class TestTempFiles:
    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_private_script_permissions(self, tmp_path: Path):
        path = write_private_script(tmp_path / "t", "patch", "echo hi\n", ".sh")
        assert stat.S_IMODE(path.stat().st_mode) == 0o700
        assert stat.S_IMODE((tmp_path / "t").stat().st_mode) == 0o700

    def test_ps1_has_bom(self, tmp_path: Path):
        path = write_private_script(tmp_path, "restore", "Write-Output 1", ".ps1")
        assert path.read_bytes().startswith(b"\xef\xbb\xbf")

    def test_unique_names(self, tmp_path: Path):
        a = write_private_script(tmp_path, "patch", "a", ".sh")
        b = write_private_script(tmp_path, "patch", "b", ".sh")
        assert a != b
        assert a.name.startswith("patch-")

    def test_stage_copy(self, tmp_path: Path, jar: Path):
        staged = stage_copy(jar, tmp_path / "t")
        assert staged.name.startswith("stage-")
        assert staged.suffix == ".jar"
        assert staged.read_bytes() == jar.read_bytes()

    @posix_only
    def test_foreign_owned_dir_refused(self, tmp_path: Path, monkeypatch):
        shared = tmp_path / "bitwig-theme-manager"
        shared.mkdir(mode=0o777)
        owner = shared.stat().st_uid
        monkeypatch.setattr(os, "getuid", lambda: owner + 1)

        with pytest.raises(PermissionError, match="owned by uid"):
            write_private_script(shared, "patch", "echo hi\n", ".sh")
        with pytest.raises(PermissionError):
            private_dir(shared)
        assert list(shared.iterdir()) == []

    @posix_only
    def test_symlinked_dir_refused(self, tmp_path: Path, jar: Path):
        real = tmp_path / "real"
        real.mkdir(mode=0o700)
        link = tmp_path / "link"
        link.symlink_to(real, target_is_directory=True)

        with pytest.raises(PermissionError, match="not a plain directory"):
            stage_copy(jar, link)
        assert list(real.iterdir()) == []

    @posix_only
    def test_open_dir_is_tightened(self, tmp_path: Path):
        d = tmp_path / "t"
        d.mkdir()
        d.chmod(0o777)
        private_dir(d)
        assert stat.S_IMODE(d.stat().st_mode) == 0o700


# ── Mock adapter ─────────────────────────────────────────────────


class TestMockAdapter:
    def test_default_success(self, ctx):
        mock = MockPlatformAdapter()
        receipt = mock.run_elevated(ElevationRequest(name="patch", script=""), ctx)
        assert receipt.ok
        assert mock.call_count == 1

    def test_read_only_paths(self, jar: Path):
        mock = MockPlatformAdapter(read_only=[jar, jar.parent])
        assert not mock.can_write(jar)
        assert not mock.can_write(jar.with_name("bitwig.patched"))
        assert mock.probed == [jar, jar.with_name("bitwig.patched")]

    def test_custom_responses(self, ctx):
        mock = MockPlatformAdapter()
        mock.set_cancelled("patch")
        mock.set_failure("restore", error="nope")
        assert mock.run_elevated(ElevationRequest(name="patch", script=""), ctx).cancelled
        assert mock.run_elevated(ElevationRequest(name="restore", script=""), ctx).error == "nope"

    def test_set_response(self, ctx):
        mock = MockPlatformAdapter()
        mock.set_response("marker", Receipt.success(adapter="mock", request="marker", output="x"))
        assert mock.run_elevated(ElevationRequest(name="marker", script=""), ctx).output == "x"

    def test_reset(self, ctx, jar: Path):
        mock = MockPlatformAdapter()
        mock.can_write(jar)
        mock.run_elevated(ElevationRequest(name="patch", script=""), ctx)
        mock.reset()
        assert mock.call_count == 0
        assert mock.probed == []

    def test_unavailable(self, ctx):
        assert not MockPlatformAdapter(available=False).is_available(ctx)


# ── Generated scripts, executed ──────────────────────────────────


@needs_bash
class TestPosixScriptsRun:
    def _run(self, script: str, tmp_path: Path) -> dict:
        path = write_private_script(tmp_path / "scripts", "t", script, ".sh")
        return run_subprocess(["bash", str(path)], timeout=30)

    def _backup(self, tmp_path: Path, data: bytes) -> tuple[Path, Path]:
        backup = tmp_path / "it's a backup" / "1.jar"
        backup.parent.mkdir()
        backup.write_bytes(data)
        checksum = backup.with_name("1.jar.sha256")
        checksum.write_text(calculate_checksum(backup))
        return backup, checksum

    def test_restore_script(self, tmp_path: Path, jar: Path):
        backup, checksum = self._backup(tmp_path, b"original")
        marker = jar.with_name("bitwig.patched")
        marker.write_text("patched")

        script = PosixAdapter().render_restore_script(backup, checksum, jar, marker, IDENTITY)
        result = self._run(script, tmp_path)
        assert result["ok"], result
        assert jar.read_bytes() == b"original"
        assert not marker.exists()

    def test_restore_script_checksum_gate(self, tmp_path: Path, jar: Path):
        backup, checksum = self._backup(tmp_path, b"original")
        backup.write_bytes(b"tampered")
        before = jar.read_bytes()

        script = PosixAdapter().render_restore_script(
            backup, checksum, jar, jar.with_name("bitwig.patched"), {},
        )
        result = self._run(script, tmp_path)
        assert result["returncode"] == 65
        assert "Checksum mismatch" in result["stderr"]
        assert jar.read_bytes() == before

    def test_restore_script_missing_sidecar(self, tmp_path: Path, jar: Path):
        backup, checksum = self._backup(tmp_path, b"original")
        checksum.unlink()
        script = PosixAdapter().render_restore_script(
            backup, checksum, jar, jar.with_name("bitwig.patched"), {},
        )
        assert self._run(script, tmp_path)["returncode"] == 65

    def test_copy_patched_script(self, tmp_path: Path, jar: Path):
        staged = tmp_path / "stage.jar"
        staged.write_bytes(b"patched")
        marker = jar.with_name("bitwig.patched")

        script = PosixAdapter().render_copy_patched_script(staged, jar, marker, IDENTITY)
        assert self._run(script, tmp_path)["ok"]
        assert jar.read_bytes() == b"patched"
        assert marker.read_text() == "patched"
