"""
Shared plumbing for the CLI command modules.
"""

from __future__ import annotations

import json
import sys
from typing import Any

import click

from bwpatch.core.config.loader import ConfigError, load_settings
from bwpatch.core.context import PatchContext


def patch_context(ctx: click.Context) -> PatchContext:
    """Build the PatchContext from ``--config`` / the environment, or exit 1."""
    try:
        settings = load_settings(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)
    return PatchContext.from_environment(settings=settings)


def echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def echo_operation(result: Any, as_json: bool, done: str) -> None:
    """Print a PatchResult and exit non-zero on failure.

    An already patched jar is reported but not treated as a failure;
    a dismissed elevation prompt gets a neutral message.
    """
    if as_json:
        echo_json(result.to_dict())
        if not result.ok and not result.already_patched:
            sys.exit(1)
        return

    if result.ok and result.already_patched:
        click.secho(f"⚠️  {result.target} was already patched (reported by patcher)", fg="yellow")
    elif result.ok:
        via = " (elevated)" if result.elevated else ""
        click.secho(f"✅ {done}: {result.target}{via}", fg="green", bold=True)
        if result.backup:
            click.echo(f"   Backup: {result.backup}")
    elif result.already_patched:
        click.secho(f"⚠️  {result.error}", fg="yellow")
    elif result.error_kind == "elevation_cancelled":
        click.secho("Cancelled: elevation prompt was dismissed", fg="yellow")
        sys.exit(1)
    else:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(1)
