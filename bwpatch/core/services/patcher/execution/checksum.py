"""
L4 Execution — SHA-256 checksums and their sidecar files.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

_CHUNK = 8192


def calculate_checksum(path: Path) -> str:
    """Hex SHA-256 of a file, read in chunks.

    Raises:
        OSError: If the file cannot be read.
    """
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK), b""):
            h.update(chunk)
    return h.hexdigest()


def checksum_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def verify_checksum(path: Path, expected: str) -> bool:
    """True if ``path`` hashes to ``expected`` (case-insensitive hex)."""
    return calculate_checksum(path) == expected.strip().lower()


def read_checksum_file(path: Path) -> str:
    """Digest stored in a sidecar.

    Accepts a bare digest or ``sha256sum`` output (``<hex>  <name>``),
    since elevated scripts write the latter.
    """
    raw = path.read_text(encoding="utf-8").strip()
    return raw.split()[0].lower() if raw else ""


def write_checksum_file(path: Path, digest: str) -> None:
    path.write_text(digest, encoding="utf-8")
