"""
Shared test fixtures and configuration.
"""

import os
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from bwpatch.core.config.loader import Settings
from bwpatch.core.context import PatchContext

ORIGINAL_BYTES = b"PK\x03\x04 original bitwig.jar bytes"
PATCHED_BYTES = b"PK\x03\x04 patched bitwig.jar bytes"


@pytest.fixture
def home_dir(tmp_path: Path) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    return home


@pytest.fixture
def ctx(tmp_path: Path, home_dir: Path) -> PatchContext:
    """A Linux context whose cache and temp dirs live under tmp_path."""
    env = {
        "HOME": str(home_dir),
        "USER": "tester",
        "LOGNAME": "tester",
        "PATH": os.environ.get("PATH", ""),
    }
    settings = Settings(cache_dir=tmp_path / "cache", temp_dir=tmp_path / "tmp")
    return PatchContext.from_environment(env=env, settings=settings, system="linux")


@pytest.fixture
def jar(tmp_path: Path) -> Path:
    """An unpatched ``bitwig.jar`` inside a fake installation."""
    path = tmp_path / "bitwig-studio" / "bin" / "bitwig.jar"
    path.parent.mkdir(parents=True)
    path.write_bytes(ORIGINAL_BYTES)
    return path


@pytest.fixture
def java_path(tmp_path: Path) -> Path:
    path = tmp_path / "jdk" / "bin" / "java"
    path.parent.mkdir(parents=True)
    path.write_text("#!/bin/sh\n")
    return path


@pytest.fixture
def patcher_jar(tmp_path: Path) -> Path:
    path = tmp_path / "cache" / "patcher" / "bitwig-theme-editor-2.2.0.jar"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"patcher")
    return path


@pytest.fixture
def tool_runner() -> MagicMock:
    """Runner standing in for ``java -jar patcher <jar>``.

    Rewrites the jar named by the last argument, like the real tool.
    """
    def _run(cmd, **kwargs):
        Path(cmd[-1]).write_bytes(PATCHED_BYTES)
        return {"ok": True, "returncode": 0, "stdout": "Patched successfully\n", "stderr": ""}

    return MagicMock(side_effect=_run)


@pytest.fixture
def executor_options(java_path: Path, patcher_jar: Path, tool_runner: MagicMock) -> dict:
    """PatchExecutor collaborators that need neither Java nor network."""
    return {
        "runner": tool_runner,
        "java_finder": lambda ctx, target, runner: java_path,
        "acquire": lambda ctx: patcher_jar,
    }
