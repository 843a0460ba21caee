"""
CLI commands for the namespaced backup store.

Thin wrappers over ``bwpatch.core.use_cases.patching``.
"""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path

import click

from bwpatch.ui.cli.helpers import echo_json, echo_operation, patch_context


@click.group()
def backup() -> None:
    """Backups — list, create, verify and prune snapshots of a jar."""


@backup.command("list")
@click.argument("jar", type=click.Path(path_type=Path))
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_cmd(ctx: click.Context, jar: Path, as_json: bool) -> None:
    """List snapshots of JAR, newest first."""
    from bwpatch.core.use_cases.patching import list_backups

    records = list_backups(jar, context=patch_context(ctx))

    if as_json:
        echo_json({"target": str(jar), "backups": [r.to_dict() for r in records]})
        return

    if not records:
        click.secho(f"No backups for {jar}", fg="yellow")
        return

    click.secho(f"\n💾 Backups of {jar}", fg="cyan", bold=True)
    for record in records:
        when = datetime.fromtimestamp(record.timestamp).strftime("%Y-%m-%d %H:%M:%S")
        mark = click.style("✓", fg="green") if record.valid else click.style("✗ invalid", fg="red")
        click.echo(f"   {when}  {record.backup_file.name}  {mark}")
    click.echo()


@backup.command()
@click.argument("jar", type=click.Path(path_type=Path))
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def create(ctx: click.Context, jar: Path, as_json: bool) -> None:
    """Snapshot JAR into the backup store now."""
    from bwpatch.core.use_cases.patching import create_backup

    result = create_backup(jar, context=patch_context(ctx))
    echo_operation(result, as_json, "Backup created")


@backup.command()
@click.argument("jar", type=click.Path(path_type=Path))
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def verify(ctx: click.Context, jar: Path, as_json: bool) -> None:
    """Check every snapshot of JAR against its checksum.

    Exits 1 when the newest snapshot, the one a restore would use,
    is invalid or when there are no snapshots at all.
    """
    from bwpatch.core.use_cases.patching import list_backups

    records = list_backups(jar, context=patch_context(ctx))
    usable = bool(records) and bool(records[0].valid)

    if as_json:
        echo_json({
            "target": str(jar),
            "restorable": usable,
            "backups": [r.to_dict() for r in records],
        })
    elif not records:
        click.secho(f"❌ No backups for {jar}", fg="red")
    else:
        for record in records:
            if record.valid:
                click.secho(f"   ✅ {record.backup_file.name}", fg="green")
            else:
                click.secho(f"   ❌ {record.backup_file.name} (checksum mismatch or missing)", fg="red")

    if not usable:
        sys.exit(1)


@backup.command()
@click.argument("jar", type=click.Path(path_type=Path))
@click.option("--keep", type=click.IntRange(min=1), default=None,
              help="Snapshots to keep (default: keep_backups from config).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def prune(ctx: click.Context, jar: Path, keep: int | None, as_json: bool) -> None:
    """Delete old snapshots of JAR."""
    from bwpatch.core.use_cases.patching import prune_backups

    try:
        removed = prune_backups(jar, keep, context=patch_context(ctx))
    except OSError as e:
        click.secho(f"❌ Prune failed: {e}", fg="red", err=True)
        sys.exit(1)

    if as_json:
        echo_json({"target": str(jar), "removed": [str(p) for p in removed]})
        return

    if not removed:
        click.echo("Nothing to prune")
        return
    for path in removed:
        click.echo(f"   🗑  {path.name}")
    click.secho(f"✅ Removed {len(removed)} backup(s)", fg="green")
