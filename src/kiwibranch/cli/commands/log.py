"""kiwi log -- show a branch's messages."""

from __future__ import annotations

import click


@click.command()
@click.argument("branch_id")
@click.pass_context
def log(ctx: click.Context, branch_id: str) -> None:
    """Show the messages of BRANCH_ID, oldest first."""
    from kiwibranch.cli import _kiwi_session
    from kiwibranch.cli.formatting import format_log

    with _kiwi_session(ctx) as (k, console):
        format_log(k.get_conversation(branch_id), console)
