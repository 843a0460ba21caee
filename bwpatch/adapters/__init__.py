"""Adapters — platform privilege brokers.

Public re-exports for convenient access.
"""

from bwpatch.adapters.base import PlatformAdapter
from bwpatch.adapters.mock import MockPlatformAdapter
from bwpatch.adapters.posix import PosixAdapter
from bwpatch.adapters.registry import adapter_for
from bwpatch.adapters.windows import WindowsAdapter

__all__ = [
    "MockPlatformAdapter",
    "PlatformAdapter",
    "PosixAdapter",
    "WindowsAdapter",
    "adapter_for",
]
