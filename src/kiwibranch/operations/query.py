"""Read-side operations: branch listings and branch logs."""

from __future__ import annotations

from typing import TYPE_CHECKING

from kiwibranch.models.branch import BranchSummary
from kiwibranch.models.message import MessageInfo
from kiwibranch.operations.branch import require_branch, row_to_info as branch_row_to_info

if TYPE_CHECKING:
    from kiwibranch.storage.repositories import BranchRepository, MessageRepository
    from kiwibranch.storage.schema import MessageRow


def row_to_info(row: MessageRow) -> MessageInfo:
    """Convert a MessageRow to MessageInfo."""
    return MessageInfo(
        id=row.id,
        branch_id=row.branch_id,
        role=row.role,
        content=row.content,
        metadata=dict(row.metadata_json or {}),
        created_at=row.created_at,
        is_pinned=row.is_pinned,
        is_bookmarked=row.is_bookmarked,
    )


def list_branches(
    user_id: str,
    branch_repo: BranchRepository,
    message_repo: MessageRepository,
) -> list[BranchSummary]:
    """List a user's branches, newest first, with shallow message counts.

    Counts come from one grouped query and only include rows written
    under each branch's own id, for every variant.
    """
    rows = branch_repo.list_for_user(user_id)
    counts = message_repo.count_by_branch([r.id for r in rows])
    return [
        BranchSummary(branch=branch_row_to_info(r), message_count=counts[r.id])
        for r in rows
    ]


def get_conversation(
    branch_id: str,
    message_repo: MessageRepository,
    branch_repo: BranchRepository | None = None,
) -> list[MessageInfo]:
    """Return exactly the messages stored under branch_id, oldest first.

    Ancestor or merge-source logs are never included.  When *branch_repo*
    is given, an unknown branch raises BranchNotFoundError instead of
    returning an empty list.
    """
    if branch_repo is not None:
        require_branch(branch_repo, branch_id)
    return [row_to_info(r) for r in message_repo.list_ordered(branch_id)]
