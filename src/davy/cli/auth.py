"""`davy auth` subcommands: persistent auth state management."""

from __future__ import annotations

import click

from ..errors import DavyError
from ..paths import get_host_ids
from ..volume import reset_volume, resolve_claude_volume
from .utils import check_docker, report_error


@click.group()
def auth() -> None:
    """Manage persistent auth state."""


@auth.group()
def claude() -> None:
    """Claude auth volume management."""


@claude.command()
@click.pass_context
def reset(ctx: click.Context) -> None:
    """Delete the Claude auth volume.

    Succeeds when the volume does not exist.
    """
    uid, _ = get_host_ids()
    volume = resolve_claude_volume(uid)
    try:
        check_docker()
        reset_volume(volume)
    except DavyError as e:
        report_error(e)
        ctx.exit(e.exit_code)
