"""
Adapter selection — one privilege broker per platform family.

Executors receive an adapter explicitly; this is only where the real
one gets picked for the running platform.
"""

from __future__ import annotations

import logging

from bwpatch.adapters.base import PlatformAdapter
from bwpatch.adapters.posix import PosixAdapter
from bwpatch.adapters.windows import WindowsAdapter
from bwpatch.core.context import PatchContext

logger = logging.getLogger(__name__)

_ADAPTERS: dict[str, type[PlatformAdapter]] = {
    "linux": PosixAdapter,
    "darwin": PosixAdapter,
    "windows": WindowsAdapter,
}


def adapter_for(ctx: PatchContext) -> PlatformAdapter:
    """The privilege broker for ``ctx.system``."""
    adapter = _ADAPTERS[ctx.system]()
    logger.debug("Selected %r for %s", adapter, ctx.system)
    return adapter
