"""
Tests for patcher acquisition — cache reuse, transfer fallback and
checksum pinning.
"""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from bwpatch.core.context import PatchContext
from bwpatch.core.models.artifact import PatcherArtifact
from bwpatch.core.services.patcher.domain.errors import ChecksumMismatch, DownloadFailed
from bwpatch.core.services.patcher.execution.checksum import checksum_bytes
from bwpatch.core.services.patcher.execution.download import (
    available_transfer_program,
    ensure_patcher_available,
    patcher_status,
)

PAYLOAD = b"bitwig-theme-editor bytes"

_FIND = "bwpatch.core.services.patcher.execution.download.find_program"


def _only(*names: str):
    return lambda name, env=None: f"/usr/bin/{name}" if name in names else None


def _writes(payload: bytes, flag: str):
    """subprocess.run stand-in that writes ``payload`` to the path after ``flag``."""
    def _run(cmd, **kwargs):
        Path(cmd[cmd.index(flag) + 1]).write_bytes(payload)
        return MagicMock(returncode=0, stdout="", stderr="")
    return _run


@pytest.fixture
def artifact(ctx: PatchContext) -> PatcherArtifact:
    return PatcherArtifact(
        cache_path=ctx.patcher_dir / "bitwig-theme-editor-2.2.0.jar",
        sha256=checksum_bytes(PAYLOAD),
    )


class TestPinnedArtifact:
    def test_defaults(self, tmp_path: Path):
        artifact = PatcherArtifact.pinned(tmp_path)
        assert artifact.cache_path == tmp_path / "patcher" / "bitwig-theme-editor-2.2.0.jar"
        assert artifact.url.endswith("/2.2.0/bitwig-theme-editor-2.2.0.jar")
        assert len(artifact.sha256) == 64


class TestEnsurePatcherAvailable:
    @patch("subprocess.run")
    def test_valid_cache_no_download(self, mock_run, ctx, artifact):
        artifact.cache_path.parent.mkdir(parents=True)
        artifact.cache_path.write_bytes(PAYLOAD)
        assert ensure_patcher_available(ctx, artifact) == artifact.cache_path
        mock_run.assert_not_called()

    @patch(_FIND, side_effect=_only("curl", "wget"))
    @patch("subprocess.run")
    def test_downloads_with_curl_first(self, mock_run, _find, ctx, artifact):
        mock_run.side_effect = _writes(PAYLOAD, "-o")
        path = ensure_patcher_available(ctx, artifact)

        assert path.read_bytes() == PAYLOAD
        cmd = mock_run.call_args[0][0]
        assert cmd[0] == "/usr/bin/curl"
        assert artifact.url in cmd
        assert mock_run.call_args.kwargs["timeout"] == ctx.timeouts.download
        assert not path.with_name(path.name + ".part").exists()

    @patch(_FIND, side_effect=_only("wget"))
    @patch("subprocess.run")
    def test_falls_back_to_wget(self, mock_run, _find, ctx, artifact):
        mock_run.side_effect = _writes(PAYLOAD, "-O")
        ensure_patcher_available(ctx, artifact)
        assert mock_run.call_args[0][0][0] == "/usr/bin/wget"

    @patch(_FIND, side_effect=_only("curl"))
    @patch("subprocess.run")
    def test_corrupt_cache_replaced(self, mock_run, _find, ctx, artifact):
        artifact.cache_path.parent.mkdir(parents=True)
        artifact.cache_path.write_bytes(b"corrupt")
        mock_run.side_effect = _writes(PAYLOAD, "-o")

        assert ensure_patcher_available(ctx, artifact).read_bytes() == PAYLOAD
        assert mock_run.call_count == 1

    @patch(_FIND, side_effect=_only())
    def test_no_transfer_program(self, _find, ctx, artifact):
        with pytest.raises(DownloadFailed, match="Neither curl nor wget"):
            ensure_patcher_available(ctx, artifact)

    @patch(_FIND, side_effect=_only("curl"))
    @patch("subprocess.run")
    def test_transfer_failure(self, mock_run, _find, ctx, artifact):
        def _fail(cmd, **kwargs):
            Path(cmd[cmd.index("-o") + 1]).write_bytes(b"partial")
            return MagicMock(returncode=22, stdout="", stderr="curl: (22) 404 Not Found")
        mock_run.side_effect = _fail

        with pytest.raises(DownloadFailed, match="404"):
            ensure_patcher_available(ctx, artifact)
        assert list(artifact.cache_path.parent.iterdir()) == []

    @patch(_FIND, side_effect=_only("curl"))
    @patch("subprocess.run")
    def test_checksum_mismatch_deletes_download(self, mock_run, _find, ctx, artifact):
        mock_run.side_effect = _writes(b"evil payload", "-o")

        with pytest.raises(ChecksumMismatch):
            ensure_patcher_available(ctx, artifact)
        assert not artifact.cache_path.exists()
        assert list(artifact.cache_path.parent.iterdir()) == []


class TestPatcherStatus:
    def test_not_cached(self, ctx, artifact):
        status = patcher_status(ctx, artifact)
        assert status["cached"] is False
        assert status["verified"] is False

    def test_verified(self, ctx, artifact):
        artifact.cache_path.parent.mkdir(parents=True)
        artifact.cache_path.write_bytes(PAYLOAD)
        assert patcher_status(ctx, artifact)["verified"] is True

    @patch(_FIND, side_effect=_only("wget"))
    def test_transfer_program(self, _find, ctx):
        assert available_transfer_program(ctx) == "wget"
