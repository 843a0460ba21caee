"""
Audit ledger — append-only history of patch operations.

One NDJSON line per patch / restore / backup operation, written to
``<cache_root>/audit.ndjson``. Entries are never rewritten. Writing
the ledger is best effort: a failed audit write is logged and never
fails the operation it describes.
"""

from __future__ import annotations

import json
import logging
from collections import deque
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class AuditEntry(BaseModel):
    """A single ledger line."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    operation: str = ""            # patch, restore, backup, prune
    target: str = ""

    status: str = ""               # ok, already_patched, cancelled, failed
    elevated: bool = False
    duration_ms: int = 0

    error_kind: str | None = None
    error: str | None = None

    context: dict[str, Any] = Field(default_factory=dict)


class AuditWriter:
    """Append-only writer and reader for one ledger file."""

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> None:
        """Append ``entry``; failures are logged, not raised."""
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False) + "\n"
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            logger.error("Failed to write audit entry: %s", e)
            return
        logger.debug("Audit entry written: %s %s", entry.operation, entry.status)

    def read_all(self) -> list[AuditEntry]:
        """All entries, oldest first. Corrupt lines are skipped."""
        return list(self._entries())

    def read_recent(self, n: int = 20, target: Path | None = None) -> list[AuditEntry]:
        """The last ``n`` entries, optionally only those for ``target``."""
        wanted = None if target is None else str(target)
        recent: deque[AuditEntry] = deque(maxlen=n)
        for entry in self._entries():
            if wanted is None or entry.target == wanted:
                recent.append(entry)
        return list(recent)

    def entry_count(self) -> int:
        return sum(1 for _ in self._lines())

    def _lines(self) -> Iterator[tuple[int, str]]:
        if not self._path.is_file():
            return
        try:
            with self._path.open(encoding="utf-8") as f:
                for number, raw in enumerate(f, start=1):
                    if raw.strip():
                        yield number, raw
        except OSError as e:
            logger.error("Cannot read audit ledger %s: %s", self._path, e)

    def _entries(self) -> Iterator[AuditEntry]:
        for number, raw in self._lines():
            try:
                yield AuditEntry.model_validate_json(raw)
            except ValidationError as e:
                logger.warning("Ignoring unreadable audit line %d: %s", number, e)
