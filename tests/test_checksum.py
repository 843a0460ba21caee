"""
Tests for SHA-256 helpers and checksum sidecars.
"""

import hashlib
from pathlib import Path

from bwpatch.core.services.patcher.execution.checksum import (
    calculate_checksum,
    checksum_bytes,
    read_checksum_file,
    verify_checksum,
    write_checksum_file,
)


class TestCalculateChecksum:
    def test_matches_hashlib(self, tmp_path: Path):
        f = tmp_path / "data.bin"
        f.write_bytes(b"hello bitwig")
        assert calculate_checksum(f) == hashlib.sha256(b"hello bitwig").hexdigest()

    def test_large_file_read_in_chunks(self, tmp_path: Path):
        data = bytes(range(256)) * 1000
        f = tmp_path / "big.bin"
        f.write_bytes(data)
        assert calculate_checksum(f) == checksum_bytes(data)

    def test_empty_file(self, tmp_path: Path):
        f = tmp_path / "empty"
        f.write_bytes(b"")
        assert calculate_checksum(f) == hashlib.sha256(b"").hexdigest()


class TestVerifyChecksum:
    def test_round_trip(self, tmp_path: Path):
        f = tmp_path / "a.jar"
        f.write_bytes(b"jar")
        assert verify_checksum(f, calculate_checksum(f))

    def test_uppercase_expected(self, tmp_path: Path):
        f = tmp_path / "a.jar"
        f.write_bytes(b"jar")
        assert verify_checksum(f, calculate_checksum(f).upper())

    def test_one_byte_changed(self, tmp_path: Path):
        f = tmp_path / "a.jar"
        f.write_bytes(b"jar")
        digest = calculate_checksum(f)
        f.write_bytes(b"jaR")
        assert not verify_checksum(f, digest)


class TestSidecar:
    def test_bare_digest(self, tmp_path: Path):
        sidecar = tmp_path / "x.sha256"
        write_checksum_file(sidecar, "ab" * 32)
        assert read_checksum_file(sidecar) == "ab" * 32
        assert sidecar.read_text() == "ab" * 32

    def test_sha256sum_format(self, tmp_path: Path):
        sidecar = tmp_path / "x.sha256"
        sidecar.write_text("AB" * 32 + "  bitwig.jar\n")
        assert read_checksum_file(sidecar) == "ab" * 32

    def test_empty_sidecar(self, tmp_path: Path):
        sidecar = tmp_path / "x.sha256"
        sidecar.write_text("\n")
        assert read_checksum_file(sidecar) == ""
