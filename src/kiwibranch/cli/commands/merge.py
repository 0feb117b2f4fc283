"""kiwi merge -- merge two branches into a new branch."""

from __future__ import annotations

import click


@click.command()
@click.argument("source_branch_id")
@click.argument("target_branch_id")
@click.argument("user_id")
@click.option("--branch-id", default=None, help="Explicit id for the merge branch.")
@click.pass_context
def merge(
    ctx: click.Context,
    source_branch_id: str,
    target_branch_id: str,
    user_id: str,
    branch_id: str | None,
) -> None:
    """Merge SOURCE_BRANCH_ID and TARGET_BRANCH_ID into a new branch.

    Messages are interleaved by time; on equal timestamps the source
    message comes first.  Exits with status 2 if some messages could
    not be copied.
    """
    from kiwibranch.cli import _kiwi_session
    from kiwibranch.cli.formatting import format_merge_result

    with _kiwi_session(ctx) as (k, console):
        result = k.merge(source_branch_id, target_branch_id, user_id, branch_id=branch_id)
        format_merge_result(result, console)
    if result.partial:
        raise SystemExit(2)
