"""kiwi pin / kiwi bookmark -- toggle message flags."""

from __future__ import annotations

import click


@click.command()
@click.argument("message_id")
@click.option("--off", is_flag=True, help="Clear the flag instead of setting it.")
@click.pass_context
def pin(ctx: click.Context, message_id: str, off: bool) -> None:
    """Pin (or with --off, unpin) MESSAGE_ID."""
    from kiwibranch.cli import _kiwi_session

    with _kiwi_session(ctx) as (k, console):
        k.pin(message_id, not off)
        console.print(f"{'Unpinned' if off else 'Pinned'} {message_id}", highlight=False)


@click.command()
@click.argument("message_id")
@click.option("--off", is_flag=True, help="Clear the flag instead of setting it.")
@click.pass_context
def bookmark(ctx: click.Context, message_id: str, off: bool) -> None:
    """Bookmark (or with --off, unbookmark) MESSAGE_ID."""
    from kiwibranch.cli import _kiwi_session

    with _kiwi_session(ctx) as (k, console):
        k.bookmark(message_id, not off)
        label = "Removed bookmark from" if off else "Bookmarked"
        console.print(f"{label} {message_id}", highlight=False)
