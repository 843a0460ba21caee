"""
L3 Detection — read-only probes.

These functions READ system state but never WRITE.
"""

from bwpatch.core.services.patcher.detection.java_runtime import (  # noqa: F401
    describe_java,
    find_java,
    java_candidates,
)
