"""kiwi fork -- fork a branch up to an optional cutoff message."""

from __future__ import annotations

import click


@click.command()
@click.argument("parent_branch_id")
@click.argument("user_id")
@click.option("--at", "cutoff", default=None, help="Cutoff message id (inclusive).")
@click.option("--branch-id", default=None, help="Explicit id for the new branch.")
@click.pass_context
def fork(
    ctx: click.Context,
    parent_branch_id: str,
    user_id: str,
    cutoff: str | None,
    branch_id: str | None,
) -> None:
    """Fork PARENT_BRANCH_ID into a new branch owned by USER_ID.

    Exits with status 2 if some messages could not be copied.
    """
    from kiwibranch.cli import _kiwi_session
    from kiwibranch.cli.formatting import format_fork_result

    with _kiwi_session(ctx) as (k, console):
        result = k.fork(parent_branch_id, user_id, cutoff, branch_id=branch_id)
        format_fork_result(result, console)
    if result.partial:
        raise SystemExit(2)
