"""
Platform adapter base — the privilege-broker contract.

Each supported OS family implements one capability set:

    probe-write     → can_write()
    run-elevated    → is_available(), run_elevated()
    generate-script → render_*_script()

Executors only talk to this interface; there are no platform
branches anywhere else.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Literal

from bwpatch.core.context import PatchContext
from bwpatch.core.models.artifact import ElevationRequest
from bwpatch.core.models.receipt import Receipt
from bwpatch.core.services.patcher.execution.subprocess_runner import run_subprocess
from bwpatch.core.services.patcher.execution.temp_files import (
    remove_quietly,
    write_private_script,
)

logger = logging.getLogger(__name__)

Runner = Callable[..., dict[str, Any]]
Outcome = Literal["ok", "cancelled", "failed"]


class PlatformAdapter(ABC):
    """Abstract base class for platform privilege adapters.

    Adapters never raise for an operational failure of the elevated
    run: the outcome is captured in the Receipt. Script rendering
    does raise ``InvalidInput`` for unsafe values, before anything is
    written to disk.
    """

    def __init__(self, runner: Runner = run_subprocess):
        self._runner = runner

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'posix', 'windows')."""

    @property
    @abstractmethod
    def script_suffix(self) -> str:
        """File extension for generated scripts."""

    # ── probe-write ─────────────────────────────────────────────

    def can_write(self, path: Path) -> bool:
        """Whether the current user may write ``path``.

        For a missing path the probe is scoped to its parent directory.
        Never cached: callers probe per operation.
        """
        if path.exists():
            try:
                with open(path, "r+b"):
                    return True
            except OSError:
                return False
        return self._can_write_dir(path.parent)

    @abstractmethod
    def _can_write_dir(self, directory: Path) -> bool:
        """Whether a new file could be created in ``directory``."""

    # ── run-elevated ────────────────────────────────────────────

    @abstractmethod
    def is_available(self, ctx: PatchContext) -> bool:
        """Whether this platform's elevation mechanism is installed."""

    @abstractmethod
    def elevation_command(self, script_path: Path, ctx: PatchContext) -> list[str]:
        """Command that runs ``script_path`` with elevated privileges."""

    @abstractmethod
    def classify(self, result: Mapping[str, Any]) -> Outcome:
        """Map a runner result onto ok / cancelled / failed."""

    def run_elevated(self, request: ElevationRequest, ctx: PatchContext) -> Receipt:
        """Write, run and delete an elevation script synchronously.

        The script is removed whatever the outcome. An abandoned prompt
        is left to the OS; only the timeout ends the wait.
        """
        start = time.monotonic()
        try:
            script_path = write_private_script(
                ctx.temp_dir, request.name, request.script, self.script_suffix,
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                request=request.name,
                error=f"Cannot write elevation script: {e}",
            )

        logger.info("Requesting elevation for %s via %s", request.name, self.name)
        try:
            result = self._runner(
                self.elevation_command(script_path, ctx),
                timeout=ctx.timeouts.elevation,
                env=ctx.env,
            )
        finally:
            remove_quietly(script_path)

        elapsed_ms = int((time.monotonic() - start) * 1000)
        common = {
            "adapter": self.name,
            "request": request.name,
            "duration_ms": elapsed_ms,
            "return_code": result.get("returncode"),
            "metadata": {"stdout": result.get("stdout", "")},
        }

        outcome = self.classify(result)
        if outcome == "ok":
            return Receipt.success(output=result.get("stdout", ""), **common)
        if outcome == "cancelled":
            logger.info("Elevation for %s dismissed by user", request.name)
            return Receipt.cancel(**common)

        error = (result.get("stderr") or "").strip() or result.get("error") or "unknown error"
        logger.warning("Elevated %s failed: %s", request.name, error)
        return Receipt.failure(error=error, output=result.get("stdout", ""), **common)

    # ── generate-script ─────────────────────────────────────────

    @abstractmethod
    def quote(self, value: str, label: str = "value") -> str:
        """Validate and quote one value for this script syntax."""

    @abstractmethod
    def render_copy_patched_script(
        self, staged: Path, target: Path, marker: Path, env: Mapping[str, str],
    ) -> str:
        """Copy the patched stage over the target, then write the marker."""

    @abstractmethod
    def render_marker_script(self, marker: Path, env: Mapping[str, str]) -> str:
        """Write the marker only."""

    @abstractmethod
    def render_restore_script(
        self,
        backup: Path,
        checksum_file: Path,
        target: Path,
        marker: Path,
        env: Mapping[str, str],
    ) -> str:
        """Verify the backup checksum, copy it over the target, drop the marker."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
