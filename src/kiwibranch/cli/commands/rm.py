"""kiwi rm -- delete a message."""

from __future__ import annotations

import click


@click.command()
@click.argument("message_id")
@click.pass_context
def rm(ctx: click.Context, message_id: str) -> None:
    """Delete MESSAGE_ID.  Copies of it in other branches are kept."""
    from kiwibranch.cli import _kiwi_session

    with _kiwi_session(ctx) as (k, console):
        k.remove_message(message_id)
        console.print(f"Removed {message_id}", highlight=False)
