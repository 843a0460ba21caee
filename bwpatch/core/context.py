"""
Patch context — the explicit replacement for ambient process state.

Everything an operation needs to know about "who and where" (identity
of the invoking user, platform, cache and temp locations, timeouts)
is captured once in a ``PatchContext`` and passed down. Nothing below
the use-case layer reads ``os.environ`` directly.

    ctx = PatchContext.from_environment()                 # real process
    ctx = PatchContext.from_environment(env={...}, ...)   # tests
"""

from __future__ import annotations

import os
import platform
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from bwpatch.core.config.loader import Settings, Timeouts
from bwpatch.core.services.patcher.data.constants import (
    APP_DIR_NAME,
    AUDIT_FILE,
    BACKUPS_SUBDIR,
    PATCHER_SUBDIR,
)
from bwpatch.core.services.patcher.domain.input_validation import reject_unsafe

System = Literal["linux", "darwin", "windows"]


def normalize_system(name: str | None = None) -> System:
    """Map ``platform.system()`` onto the three supported families."""
    name = (name or platform.system()).lower()
    if name.startswith("win"):
        return "windows"
    if name == "darwin":
        return "darwin"
    return "linux"


def default_cache_root(env: Mapping[str, str], system: System, home: str) -> Path:
    """Per-user cache root, e.g. ``~/.cache/bitwig-theme-manager``."""
    home_path = Path(home) if home else Path.home()
    if system == "windows":
        base = Path(env.get("LOCALAPPDATA") or home_path / "AppData" / "Local")
    elif system == "darwin":
        base = home_path / "Library" / "Caches"
    else:
        base = Path(env.get("XDG_CACHE_HOME") or home_path / ".cache")
    return base / APP_DIR_NAME


def default_temp_dir() -> Path:
    """Per-user scratch dir, e.g. ``/tmp/bitwig-theme-manager-1000``."""
    name = APP_DIR_NAME
    if hasattr(os, "getuid"):
        name = f"{name}-{os.getuid()}"
    return Path(tempfile.gettempdir()) / name


class PatchContext(BaseModel):
    """Everything an executor needs besides the target path."""

    system: System
    home: str = ""
    user: str = ""
    logname: str = ""
    cache_root: Path
    temp_dir: Path
    java_home: str | None = None
    env: dict[str, str] = Field(default_factory=dict)
    timeouts: Timeouts = Field(default_factory=Timeouts)
    backup_policy: Literal["best_effort", "required"] = "best_effort"
    keep_backups: int = 5

    @classmethod
    def from_environment(
        cls,
        env: Mapping[str, str] | None = None,
        settings: Settings | None = None,
        system: str | None = None,
    ) -> PatchContext:
        """Capture identity and locations from an environment mapping."""
        env = dict(os.environ if env is None else env)
        settings = settings or Settings()
        sysname = normalize_system(system)

        if sysname == "windows":
            home = env.get("USERPROFILE") or env.get("HOME", "")
            user = env.get("USERNAME", "")
            logname = user
        else:
            home = env.get("HOME", "")
            user = env.get("USER", "")
            logname = env.get("LOGNAME") or user

        cache_root = settings.cache_dir or default_cache_root(env, sysname, home)
        temp_dir = settings.temp_dir or default_temp_dir()
        java_home = str(settings.java_home) if settings.java_home else env.get("JAVA_HOME")

        return cls(
            system=sysname,
            home=home,
            user=user,
            logname=logname,
            cache_root=Path(cache_root),
            temp_dir=Path(temp_dir),
            java_home=java_home or None,
            env=env,
            timeouts=settings.timeouts,
            backup_policy=settings.backup_policy,
            keep_backups=settings.keep_backups,
        )

    # ── Derived locations ───────────────────────────────────────

    @property
    def patcher_dir(self) -> Path:
        return self.cache_root / PATCHER_SUBDIR

    @property
    def backups_dir(self) -> Path:
        return self.cache_root / BACKUPS_SUBDIR

    @property
    def audit_path(self) -> Path:
        return self.cache_root / AUDIT_FILE

    @property
    def is_windows(self) -> bool:
        return self.system == "windows"

    # ── Identity ────────────────────────────────────────────────

    def validated_identity(self) -> dict[str, str]:
        """Home, user and login name, checked for script safety.

        These strings come from environment variables and end up in
        generated scripts and on the patcher's command line.

        Raises:
            InvalidInput: If any of them contains a newline, CR or NUL.
        """
        return {
            "HOME": reject_unsafe(self.home, "home directory"),
            "USER": reject_unsafe(self.user, "user name"),
            "LOGNAME": reject_unsafe(self.logname, "login name"),
        }
