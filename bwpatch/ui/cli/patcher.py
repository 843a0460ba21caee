"""
CLI commands for the cached patcher tool.
"""

from __future__ import annotations

import sys

import click

from bwpatch.ui.cli.helpers import echo_json, patch_context


@click.group()
def patcher() -> None:
    """Patcher — download and inspect the pinned theme-editor jar."""


@patcher.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def fetch(ctx: click.Context, as_json: bool) -> None:
    """Download the patcher (if needed) and verify its checksum."""
    from bwpatch.core.services.patcher.domain.errors import PatchError
    from bwpatch.core.services.patcher.execution.download import ensure_patcher_available

    pctx = patch_context(ctx)
    try:
        path = ensure_patcher_available(pctx)
    except PatchError as e:
        if as_json:
            echo_json({"ok": False, **e.to_dict()})
        else:
            click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    if as_json:
        echo_json({"ok": True, "path": str(path)})
        return
    click.secho(f"✅ Patcher ready: {path}", fg="green")


@patcher.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def info(ctx: click.Context, as_json: bool) -> None:
    """Show the pinned patcher and the state of the local cache."""
    from bwpatch.core.services.patcher.execution.download import (
        available_transfer_program,
        patcher_status,
    )

    pctx = patch_context(ctx)
    status = patcher_status(pctx)
    status["transfer_program"] = available_transfer_program(pctx)

    if as_json:
        echo_json(status)
        return

    click.secho("\n🔧 Patcher", fg="cyan", bold=True)
    click.echo(f"   URL:      {status['url']}")
    click.echo(f"   SHA-256:  {status['expected_sha256']}")
    click.echo(f"   Cache:    {status['path']}")
    if status["verified"]:
        click.secho("   State:    cached, verified", fg="green")
    elif status["cached"]:
        click.secho("   State:    cached, checksum mismatch", fg="red")
    else:
        click.secho("   State:    not downloaded", fg="yellow")
    click.echo(f"   Download: {status['transfer_program'] or 'no curl or wget found'}")
    click.echo()
