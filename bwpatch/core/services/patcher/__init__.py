"""
Patch orchestration service — layered like an onion.

    data          → pinned constants and known filesystem layouts
    domain        → pure helpers (errors, sidecar paths, quoting)
    detection     → read-only probes (Java runtime discovery)
    execution     → side effects (subprocess, checksum, download, backup)
    orchestration → patch and restore executors

Import from the layer modules directly; the public entry points for
callers live in ``bwpatch.core.use_cases.patching``.
"""
