"""
bwpatch — CLI entrypoint.

Usage:
    bwpatch --help
    bwpatch status /opt/bitwig-studio/bin/bitwig.jar
    bwpatch patch /opt/bitwig-studio/bin/bitwig.jar
    bwpatch restore /opt/bitwig-studio/bin/bitwig.jar
"""

from __future__ import annotations

import os
import sys
from datetime import datetime
from pathlib import Path

import click

from bwpatch import __version__
from bwpatch.core.observability.logging_config import (
    ENV_LOG_FILE,
    ENV_LOG_FILE_LEVEL,
    resolve_level,
    setup_logging,
)
from bwpatch.ui.cli.helpers import echo_json, echo_operation, patch_context


@click.group()
@click.version_option(version=__version__, prog_name="bwpatch")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to bwpatch.yml (default: $BWP_CONFIG or the user config dir).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """bwpatch — patch Bitwig Studio's bitwig.jar for custom themes, and undo it."""
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    if debug:
        flag = "DEBUG"
    elif verbose:
        flag = "INFO"
    elif quiet:
        flag = "ERROR"
    else:
        flag = None

    setup_logging(
        level=resolve_level(flag),
        log_file=os.environ.get(ENV_LOG_FILE),
        log_file_level=os.environ.get(ENV_LOG_FILE_LEVEL),
    )


@cli.command()
@click.argument("jar", type=click.Path(path_type=Path))
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, jar: Path, as_json: bool) -> None:
    """Show patch state, backups, Java and patcher cache for JAR."""
    from bwpatch.core.use_cases.patching import get_status

    result = get_status(jar, context=patch_context(ctx))

    if as_json:
        echo_json(result.to_dict())
        return

    if not result.exists:
        click.secho(f"❌ JAR file not found: {jar}", fg="red")
        sys.exit(1)

    click.secho(f"\n🎛  {jar}", fg="cyan", bold=True)
    if result.patched:
        click.secho("   Patched:     yes", fg="green")
    else:
        click.echo("   Patched:     no")
    click.echo(f"   Writable:    {'yes' if result.writable else 'no'}")
    elevation = result.adapter if result.elevation_available else "not available"
    click.echo(f"   Elevation:   {elevation}")

    valid = [b for b in result.backups if b.valid]
    click.echo(f"   Backups:     {len(valid)} valid / {len(result.backups)} total"
               + (" (+ simple backup)" if result.simple_backup else ""))
    if valid:
        newest = datetime.fromtimestamp(valid[0].timestamp).strftime("%Y-%m-%d %H:%M:%S")
        click.echo(f"                newest {newest}")

    if result.java:
        click.echo(f"   Java:        {result.java}")
        if result.java_version and not ctx.obj.get("quiet"):
            click.echo(f"                {result.java_version}")
    else:
        click.secho("   Java:        not found", fg="yellow")

    patcher = result.patcher
    state = "verified" if patcher.get("verified") else ("corrupt" if patcher.get("cached") else "not downloaded")
    click.echo(f"   Patcher:     {state}")
    click.echo()


@cli.command()
@click.argument("jar", type=click.Path(path_type=Path))
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def patch(ctx: click.Context, jar: Path, as_json: bool) -> None:
    """Back up and patch JAR, elevating only if it is not writable."""
    from bwpatch.core.use_cases.patching import patch as run_patch

    if not as_json and not ctx.obj.get("quiet"):
        click.echo(f"Patching {jar} ...")
    result = run_patch(jar, context=patch_context(ctx))
    echo_operation(result, as_json, "Patched")


@cli.command()
@click.argument("jar", type=click.Path(path_type=Path))
@click.option("--require-patched", is_flag=True, help="Refuse to restore an unpatched jar.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def restore(ctx: click.Context, jar: Path, require_patched: bool, as_json: bool) -> None:
    """Restore JAR from its newest verified backup."""
    from bwpatch.core.use_cases.patching import restore as run_restore

    result = run_restore(jar, context=patch_context(ctx), require_patched=require_patched)
    echo_operation(result, as_json, "Restored")


@cli.command()
@click.option("--jar", type=click.Path(path_type=Path), default=None,
              help="Also look for a JRE bundled with this Bitwig installation.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def java(ctx: click.Context, jar: Path | None, as_json: bool) -> None:
    """Show the Java runtime discovery chain and the runtime selected."""
    from bwpatch.core.services.patcher.detection import (
        describe_java,
        find_java,
        java_candidates,
    )

    pctx = patch_context(ctx)
    candidates = list(java_candidates(pctx, jar))
    selected = find_java(pctx, jar)
    version = describe_java(pctx, selected) if selected else ""

    if as_json:
        echo_json({
            "selected": str(selected) if selected else None,
            "version": version,
            "candidates": [{"source": s, "path": str(p)} for s, p in candidates],
        })
        if selected is None:
            sys.exit(1)
        return

    for source, path in candidates:
        marker = click.style(" ← selected", fg="green") if path == selected else ""
        click.echo(f"   [{source}] {path}{marker}")

    if selected is None:
        click.secho("❌ Java not found - please install Java Runtime Environment", fg="red")
        sys.exit(1)
    click.secho(f"✅ {selected}", fg="green")
    if version:
        click.echo(f"   {version}")


# ── Command groups ──────────────────────────────────────────────

from bwpatch.ui.cli.backup import backup  # noqa: E402
from bwpatch.ui.cli.patcher import patcher  # noqa: E402

cli.add_command(backup)
cli.add_command(patcher)


if __name__ == "__main__":
    cli()
