"""
Mock adapter — test double for the privilege broker.

Renders real bash scripts (it is a PosixAdapter underneath) but never
asks for elevation. By default every elevated run succeeds without
doing anything; ``execute=True`` runs the script with plain bash
instead, which exercises the generated script for real.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from pathlib import Path

from bwpatch.adapters.posix import PosixAdapter
from bwpatch.core.context import PatchContext
from bwpatch.core.models.artifact import ElevationRequest
from bwpatch.core.models.receipt import Receipt
from bwpatch.core.services.patcher.execution.subprocess_runner import run_subprocess
from bwpatch.core.services.patcher.execution.temp_files import (
    remove_quietly,
    write_private_script,
)


class MockPlatformAdapter(PosixAdapter):
    """Configurable privilege broker for tests.

    ``read_only`` lists paths the write probe reports as not writable
    (for a missing path, its parent is what gets listed).
    """

    def __init__(
        self,
        *,
        available: bool = True,
        read_only: Iterable[Path] = (),
        execute: bool = False,
        on_run: Callable[[ElevationRequest], None] | None = None,
    ):
        super().__init__()
        self._available = available
        self._read_only = {Path(p) for p in read_only}
        self._execute = execute
        self._on_run = on_run
        self._responses: dict[str, Receipt] = {}
        self._call_log: list[ElevationRequest] = []
        self.probed: list[Path] = []

    @property
    def name(self) -> str:
        return "mock"

    @property
    def call_log(self) -> list[ElevationRequest]:
        """All elevation requests this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def is_available(self, ctx: PatchContext) -> bool:
        return self._available

    def can_write(self, path: Path) -> bool:
        self.probed.append(path)
        if path in self._read_only:
            return False
        if not path.exists() and path.parent in self._read_only:
            return False
        return True

    def set_response(self, request_name: str, receipt: Receipt) -> None:
        """Set a custom receipt for a specific request name."""
        self._responses[request_name] = receipt

    def set_cancelled(self, request_name: str) -> None:
        """Simulate the user dismissing the prompt."""
        self._responses[request_name] = Receipt.cancel(
            adapter=self.name, request=request_name,
        )

    def set_failure(self, request_name: str, error: str = "Mock failure") -> None:
        self._responses[request_name] = Receipt.failure(
            adapter=self.name, request=request_name, error=error,
        )

    def run_elevated(self, request: ElevationRequest, ctx: PatchContext) -> Receipt:
        self._call_log.append(request)

        if request.name in self._responses:
            return self._responses[request.name]

        if self._on_run is not None:
            self._on_run(request)

        if self._execute:
            script = write_private_script(ctx.temp_dir, request.name, request.script, ".sh")
            try:
                result = run_subprocess(["bash", str(script)], timeout=60, env=ctx.env)
            finally:
                remove_quietly(script)
            if not result["ok"]:
                return Receipt.failure(
                    adapter=self.name,
                    request=request.name,
                    error=(result["stderr"] or result["error"] or "").strip(),
                    return_code=result["returncode"],
                )
            return Receipt.success(
                adapter=self.name, request=request.name, output=result["stdout"],
            )

        return Receipt.success(
            adapter=self.name,
            request=request.name,
            output="[mock] executed",
            metadata={"mock": True},
        )

    def reset(self) -> None:
        """Clear call log and custom responses."""
        self._call_log.clear()
        self._responses.clear()
        self.probed.clear()
