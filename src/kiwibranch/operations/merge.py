"""Merge operation for Kiwi.

A merge creates a new branch whose log is every message of a source
branch and a target branch, interleaved by timestamp.  Neither input
branch is modified.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from kiwibranch.models.results import MergeResult
from kiwibranch.operations.branch import (
    create_or_resume_branch,
    require_branch,
    require_id,
    row_to_info,
)
from kiwibranch.operations.copy import execute_copies, plan_copies

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from kiwibranch.models.config import CopyIdMode
    from kiwibranch.storage.repositories import BranchRepository, MessageRepository
    from kiwibranch.storage.schema import MessageRow

logger = logging.getLogger(__name__)


def interleave(
    source_log: list[MessageRow], target_log: list[MessageRow]
) -> list[MessageRow]:
    """Combine two logs into one ordered by ``created_at``.

    ``sorted`` is stable, so on equal timestamps every source message
    precedes every target message with that timestamp, and each side
    keeps its own internal order.  Nothing is deduplicated: a message
    present in both logs appears twice.
    """
    return sorted(source_log + target_log, key=lambda m: m.created_at)


def merge_branches(
    source_branch_id: str,
    target_branch_id: str,
    user_id: str,
    *,
    session: Session,
    branch_repo: BranchRepository,
    message_repo: MessageRepository,
    id_mode: CopyIdMode = "random",
    branch_id: str | None = None,
) -> MergeResult:
    """Merge two branches into a new merge branch.

    Both branches are resolved before anything is written; a missing
    one raises BranchNotFoundError and no branch is created.  Each copy
    carries ``originalBranchId`` and ``originalMessageId``.

    Args:
        source_branch_id: First merge input (wins timestamp ties).
        target_branch_id: Second merge input.
        user_id: Owner of the new branch.
        session: Session for copy savepoints.
        branch_repo: Branch repository.
        message_repo: Message repository.
        id_mode: Copy id generation (``"random"`` or ``"deterministic"``).
        branch_id: Explicit id for the merge branch.  In deterministic
            mode an existing merge of the same pair is resumed.

    Returns:
        MergeResult with the branch, copy count and partial-failure flag.

    Raises:
        RequestValidationError: If an id argument is empty.
        BranchNotFoundError: If either branch does not exist.
        BranchExistsError: If *branch_id* is taken and cannot be resumed.
    """
    require_id("source_branch_id", source_branch_id)
    require_id("target_branch_id", target_branch_id)
    require_id("user_id", user_id)
    require_branch(branch_repo, source_branch_id)
    require_branch(branch_repo, target_branch_id)

    source_log = list(message_repo.list_ordered(source_branch_id))
    target_log = list(message_repo.list_ordered(target_branch_id))
    merged = interleave(source_log, target_log)

    row, resumed = create_or_resume_branch(
        branch_repo,
        user_id,
        branch_id=branch_id,
        resumable=id_mode == "deterministic",
        merge_source_ids=[source_branch_id, target_branch_id],
    )
    logger.debug(
        "Merging %s (%d) and %s (%d) into %s (resumed=%s)",
        source_branch_id,
        len(source_log),
        target_branch_id,
        len(target_log),
        row.id,
        resumed,
    )

    plan = plan_copies(merged, row.id, id_mode=id_mode, with_branch_lineage=True)
    outcome = execute_copies(session, message_repo, plan, resume=resumed)

    return MergeResult(
        branch=row_to_info(row),
        merged_count=outcome.total,
        partial=outcome.partial,
        failures=outcome.failures,
        resumed=resumed,
    )
