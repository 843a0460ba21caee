"""
Receipt model — the result contract for platform adapters.

Adapters NEVER raise for an operational failure: every outcome of an
elevated run (success, user dismissal, failure) is captured in a
Receipt. The executors translate receipts into ``PatchError``s.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Receipt(BaseModel):
    """Result of an adapter execution."""

    adapter: str
    request: str                    # elevation request name
    status: Literal["ok", "skipped", "cancelled", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None
    return_code: int | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the elevated run succeeded."""
        return self.status == "ok"

    @property
    def cancelled(self) -> bool:
        """Whether the user dismissed the elevation prompt."""
        return self.status == "cancelled"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @classmethod
    def success(
        cls,
        adapter: str,
        request: str,
        output: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        return cls(adapter=adapter, request=request, status="ok", output=output, **kwargs)

    @classmethod
    def failure(
        cls,
        adapter: str,
        request: str,
        error: str,
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(adapter=adapter, request=request, status="failed", error=error, **kwargs)

    @classmethod
    def cancel(
        cls,
        adapter: str,
        request: str,
        error: str = "Elevation cancelled by user",
        **kwargs: Any,
    ) -> Receipt:
        """Create a receipt for a dismissed elevation prompt."""
        return cls(adapter=adapter, request=request, status="cancelled", error=error, **kwargs)

    @classmethod
    def skip(
        cls,
        adapter: str,
        request: str,
        reason: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a skip receipt."""
        return cls(adapter=adapter, request=request, status="skipped", output=reason, **kwargs)
