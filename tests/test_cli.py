"""
Tests for CLI commands — status, patch, restore, backup, patcher, java.
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from bwpatch.core.services.patcher.execution.backup import BackupManager
from bwpatch.main import cli
from tests.conftest import ORIGINAL_BYTES, PATCHED_BYTES


@pytest.fixture
def env(tmp_path: Path) -> dict:
    return {
        "BWP_CACHE_DIR": str(tmp_path / "cache"),
        "BWP_TEMP_DIR": str(tmp_path / "tmp"),
        "BWP_CONFIG": None,
        "XDG_CONFIG_HOME": str(tmp_path / "xdg"),
        "BWP_LOG_FILE": None,
        "BWP_LOG_LEVEL": "CRITICAL",
    }


@pytest.fixture
def run(env):
    runner = CliRunner()

    def _invoke(*args: str):
        return runner.invoke(cli, list(args), env=env)
    return _invoke


@pytest.fixture
def no_java():
    with patch("bwpatch.core.use_cases.patching.find_java", return_value=None):
        yield


class TestCLIGlobal:
    def test_help(self, run):
        result = run("--help")
        assert result.exit_code == 0
        assert "bitwig.jar" in result.output
        for command in ("status", "patch", "restore", "backup", "patcher", "java"):
            assert command in result.output

    def test_version(self, run):
        result = run("--version")
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_missing_config(self, run, jar: Path, tmp_path: Path):
        result = run("--config", str(tmp_path / "nope.yml"), "status", str(jar))
        assert result.exit_code == 1
        assert "Config file not found" in result.output


class TestStatusCommand:
    def test_json(self, run, jar: Path, no_java):
        result = run("status", str(jar), "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["exists"] is True
        assert data["patched"] is False
        assert data["java"]["path"] is None

    def test_human(self, run, jar: Path, no_java):
        jar.with_name("bitwig.patched").write_text("patched")
        result = run("status", str(jar))
        assert result.exit_code == 0
        assert "Patched:     yes" in result.output
        assert "Java:        not found" in result.output

    def test_missing_jar(self, run, tmp_path: Path, no_java):
        result = run("status", str(tmp_path / "bitwig.jar"))
        assert result.exit_code == 1
        assert "not found" in result.output


class TestPatchCommand:
    def test_already_patched_is_not_an_error(self, run, jar: Path):
        jar.with_name("bitwig.patched").write_text("patched")
        result = run("patch", str(jar))
        assert result.exit_code == 0
        assert "already patched" in result.output

    def test_missing_jar(self, run, tmp_path: Path):
        result = run("patch", str(tmp_path / "bitwig.jar"), "--json")
        assert result.exit_code == 1
        assert json.loads(result.output)["error_kind"] == "jar_not_found"

    def test_java_missing(self, run, jar: Path):
        with patch(
            "bwpatch.core.services.patcher.detection.java_runtime.java_candidates",
            side_effect=lambda *a, **k: iter(()),
        ):
            result = run("patch", str(jar))
        assert result.exit_code == 1
        assert "Java not found" in result.output
        assert jar.read_bytes() == ORIGINAL_BYTES


class TestRestoreCommand:
    def test_restore(self, run, jar: Path, tmp_path: Path):
        BackupManager(tmp_path / "cache").create_backup(jar)
        jar.write_bytes(PATCHED_BYTES)
        jar.with_name("bitwig.patched").write_text("patched")

        result = run("restore", str(jar))
        assert result.exit_code == 0, result.output
        assert "Restored" in result.output
        assert jar.read_bytes() == ORIGINAL_BYTES

    def test_no_backup(self, run, jar: Path):
        result = run("restore", str(jar), "--json")
        assert result.exit_code == 1
        assert json.loads(result.output)["error_kind"] == "backup_not_found"

    def test_require_patched(self, run, jar: Path, tmp_path: Path):
        BackupManager(tmp_path / "cache").create_backup(jar)
        result = run("restore", str(jar), "--require-patched")
        assert result.exit_code == 1
        assert "not patched" in result.output


class TestBackupCommands:
    def test_create_then_list(self, run, jar: Path):
        assert run("backup", "create", str(jar)).exit_code == 0
        result = run("backup", "list", str(jar), "--json")
        data = json.loads(result.output)
        assert len(data["backups"]) == 1
        assert data["backups"][0]["valid"] is True

    def test_list_empty(self, run, jar: Path):
        result = run("backup", "list", str(jar))
        assert result.exit_code == 0
        assert "No backups" in result.output

    def test_verify(self, run, jar: Path, tmp_path: Path):
        record = BackupManager(tmp_path / "cache").create_backup(jar)
        assert run("backup", "verify", str(jar)).exit_code == 0

        record.backup_file.write_bytes(b"tampered")
        result = run("backup", "verify", str(jar), "--json")
        assert result.exit_code == 1
        assert json.loads(result.output)["restorable"] is False

    def test_verify_nothing(self, run, jar: Path):
        assert run("backup", "verify", str(jar)).exit_code == 1

    def test_prune(self, run, jar: Path, tmp_path: Path):
        ns = BackupManager(tmp_path / "cache").namespace(jar)
        ns.mkdir(parents=True)
        for ts in (1, 2, 3):
            (ns / f"{ts}.jar").write_bytes(b"x")

        result = run("backup", "prune", str(jar), "--keep", "1", "--json")
        assert result.exit_code == 0
        assert len(json.loads(result.output)["removed"]) == 2


class TestPatcherCommands:
    def test_info(self, run, tmp_path: Path):
        result = run("patcher", "info", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["cached"] is False
        assert data["path"].startswith(str(tmp_path / "cache"))

    def test_fetch_failure(self, run):
        with patch(
            "bwpatch.core.services.patcher.execution.download.find_program", return_value=None,
        ):
            result = run("patcher", "fetch", "--json")
        assert result.exit_code == 1
        assert json.loads(result.output)["kind"] == "download_failed"


class TestJavaCommand:
    def test_not_found(self, run):
        with patch("bwpatch.core.services.patcher.detection.find_java", return_value=None):
            result = run("java", "--json")
        assert result.exit_code == 1
        assert json.loads(result.output)["selected"] is None
