"""
L3 Detection — Java runtime discovery.

Candidates are tried in a fixed order and each one is validated by
running ``<java> -version``; a file that merely exists is not enough.

    1. JRE bundled with the Bitwig installation (next to the target
       jar, then the known Bitwig install roots)
    2. ``java`` on PATH
    3. vendor JDK install roots
    4. JAVA_HOME (or the configured ``java_home``)
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

from bwpatch.core.context import PatchContext
from bwpatch.core.services.patcher.data.constants import (
    BITWIG_INSTALL_ROOTS,
    BUNDLED_JRE_LAYOUTS,
    JAVA_HOME_LAYOUTS,
    JDK_INSTALL_ROOTS,
    WINDOWS_DEFAULT_ENV,
)
from bwpatch.core.services.patcher.execution.subprocess_runner import (
    find_program,
    run_subprocess,
)

logger = logging.getLogger(__name__)

# How far above the target jar a bundled JRE may sit
# (bin/bitwig.jar → install root, Contents/app/bin/bitwig.jar → .app)
_ANCESTOR_DEPTH = 4

_ENV_VAR_RE = re.compile(r"%([^%]+)%")

Runner = Callable[..., dict[str, Any]]


def find_java(
    ctx: PatchContext,
    target: Path | None = None,
    *,
    runner: Runner = run_subprocess,
) -> Path | None:
    """First candidate that runs ``-version`` successfully, or None."""
    for source, candidate in java_candidates(ctx, target):
        if _runs(candidate, ctx, runner):
            logger.info("Using Java from %s: %s", source, candidate)
            return candidate
    logger.warning("No working Java runtime found")
    return None


def java_candidates(ctx: PatchContext, target: Path | None = None) -> Iterator[tuple[str, Path]]:
    """Yield ``(source, path)`` pairs in discovery order, without duplicates."""
    seen: set[str] = set()
    for source, path in _ordered_candidates(ctx, target):
        key = str(path)
        if key in seen:
            continue
        seen.add(key)
        yield source, path


def describe_java(ctx: PatchContext, java: Path, *, runner: Runner = run_subprocess) -> str:
    """First line of ``java -version`` (it prints to stderr)."""
    result = runner([str(java), "-version"], timeout=ctx.timeouts.probe, env=ctx.env)
    text = (result.get("stderr") or result.get("stdout") or "").strip()
    return text.splitlines()[0] if text else ""


# ── Candidate sources ────────────────────────────────────────────


def _ordered_candidates(ctx: PatchContext, target: Path | None) -> Iterator[tuple[str, Path]]:
    layouts = BUNDLED_JRE_LAYOUTS[ctx.system]

    # 1a. bundled, relative to the target jar
    if target is not None:
        for ancestor in list(Path(target).parents)[:_ANCESTOR_DEPTH]:
            for rel in layouts:
                candidate = ancestor / rel
                if candidate.is_file():
                    yield "bundled", candidate

    # 1b. bundled, under the known install roots (and versioned children)
    for root in _expand_roots(BITWIG_INSTALL_ROOTS[ctx.system], ctx):
        if not root.is_dir():
            continue
        for base in [root, *_child_dirs(root)]:
            for rel in layouts:
                candidate = base / rel
                if candidate.is_file():
                    yield "bundled", candidate

    # 2. PATH
    exe = "java.exe" if ctx.is_windows else "java"
    on_path = find_program(exe, ctx.env)
    if on_path:
        yield "path", Path(on_path)

    # 3. vendor install roots
    home_layouts = JAVA_HOME_LAYOUTS[ctx.system]
    for root in _expand_roots(JDK_INSTALL_ROOTS[ctx.system], ctx):
        if not root.is_dir():
            continue
        for jdk in _child_dirs(root):
            for rel in home_layouts:
                candidate = jdk / rel
                if candidate.is_file():
                    yield "install-root", candidate

    # 4. JAVA_HOME / configured override
    if ctx.java_home:
        for rel in home_layouts:
            candidate = Path(ctx.java_home) / rel
            if candidate.is_file():
                yield "java-home", candidate


def _expand_roots(roots: tuple[str, ...], ctx: PatchContext) -> list[Path]:
    expanded: list[Path] = []
    for raw in roots:
        value = raw
        if value.startswith("~"):
            if not ctx.home:
                continue
            value = ctx.home + value[1:]

        def _env(m: re.Match) -> str:
            name = m.group(1)
            return ctx.env.get(name) or WINDOWS_DEFAULT_ENV.get(name, "")

        value = _ENV_VAR_RE.sub(_env, value)
        if value:
            expanded.append(Path(value))
    return expanded


def _child_dirs(root: Path) -> list[Path]:
    try:
        return sorted((p for p in root.iterdir() if p.is_dir()), reverse=True)
    except OSError:
        return []


def _runs(java: Path, ctx: PatchContext, runner: Runner) -> bool:
    result = runner([str(java), "-version"], timeout=ctx.timeouts.probe, env=ctx.env)
    if not result["ok"]:
        logger.debug("Rejected Java candidate %s: %s", java, result.get("error"))
    return bool(result["ok"])
