"""kiwi append -- add a message to a branch."""

from __future__ import annotations

import click


@click.command()
@click.argument("branch_id")
@click.argument("content")
@click.option(
    "--role",
    type=click.Choice(["user", "assistant", "system"], case_sensitive=False),
    default="user",
    help="Speaker of the message (default: user).",
)
@click.option(
    "--user",
    "user_id",
    default=None,
    help="Owner; creates BRANCH_ID as a root branch if it does not exist.",
)
@click.pass_context
def append(
    ctx: click.Context,
    branch_id: str,
    content: str,
    role: str,
    user_id: str | None,
) -> None:
    """Append CONTENT to BRANCH_ID and print the new message id."""
    from kiwibranch.cli import _kiwi_session

    with _kiwi_session(ctx) as (k, console):
        message = k.append(branch_id, content, role=role.lower(), user_id=user_id)
        console.print(message.id, highlight=False)
