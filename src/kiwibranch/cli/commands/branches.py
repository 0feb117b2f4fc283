"""kiwi branches -- list a user's branches."""

from __future__ import annotations

import click


@click.command()
@click.argument("user_id")
@click.pass_context
def branches(ctx: click.Context, user_id: str) -> None:
    """List the branches of USER_ID, newest first, with message counts."""
    from kiwibranch.cli import _kiwi_session
    from kiwibranch.cli.formatting import format_branches

    with _kiwi_session(ctx) as (k, console):
        format_branches(k.list_branches(user_id), console)
