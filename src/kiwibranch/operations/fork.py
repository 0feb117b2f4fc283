"""Fork operation for Kiwi.

A fork is a new branch whose log starts as a copy of a prefix of its
parent's log: every parent message up to and including the cutoff
message's timestamp, or the whole log when no cutoff is given.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from kiwibranch.exceptions import CutoffNotFoundError
from kiwibranch.models.results import ForkResult
from kiwibranch.operations.branch import (
    create_or_resume_branch,
    require_branch,
    require_id,
    row_to_info,
)
from kiwibranch.operations.copy import execute_copies, plan_copies

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from kiwibranch.models.config import CopyIdMode, MissingCutoffPolicy
    from kiwibranch.storage.repositories import BranchRepository, MessageRepository

logger = logging.getLogger(__name__)


def fork_branch(
    parent_branch_id: str,
    user_id: str,
    *,
    session: Session,
    branch_repo: BranchRepository,
    message_repo: MessageRepository,
    cutoff_message_id: str | None = None,
    missing_cutoff: MissingCutoffPolicy = "fail",
    id_mode: CopyIdMode = "random",
    branch_id: str | None = None,
) -> ForkResult:
    """Fork a branch, copying its log up to an optional cutoff message.

    Flow:
        1. Resolve the parent branch.
        2. Resolve the cutoff message (if any).
        3. Read the parent's log as one snapshot (cutoff timestamp and
           selection in a single statement).
        4. Create the fork branch row.
        5. Copy each snapshot message into the fork, tagging it with
           ``originalMessageId``.

    Nothing is written before steps 1-3 succeed.  Once the branch row
    exists, individual copy failures are collected, not raised.

    Args:
        parent_branch_id: Branch to fork.
        user_id: Owner of the new branch.
        session: Session for copy savepoints.
        branch_repo: Branch repository.
        message_repo: Message repository.
        cutoff_message_id: Last message (by timestamp) to include.
        missing_cutoff: ``"fail"`` raises CutoffNotFoundError for an
            unknown cutoff id; ``"full_copy"`` forks the whole log instead.
        id_mode: Copy id generation (``"random"`` or ``"deterministic"``).
        branch_id: Explicit id for the fork.  In deterministic mode an
            existing fork with the same parent and cutoff is resumed.

    Returns:
        ForkResult with the branch, copy count and partial-failure flag.

    Raises:
        RequestValidationError: If parent_branch_id or user_id is empty.
        BranchNotFoundError: If the parent does not exist.
        CutoffNotFoundError: If the cutoff does not resolve and
            *missing_cutoff* is ``"fail"``.
        BranchExistsError: If *branch_id* is taken and cannot be resumed.
    """
    require_id("parent_branch_id", parent_branch_id)
    require_id("user_id", user_id)
    require_branch(branch_repo, parent_branch_id)

    if cutoff_message_id is not None and message_repo.get(cutoff_message_id) is None:
        if missing_cutoff == "fail":
            raise CutoffNotFoundError(cutoff_message_id)
        logger.warning(
            "Cutoff %s not found; forking the full log of %s",
            cutoff_message_id,
            parent_branch_id,
        )
        cutoff_message_id = None

    if cutoff_message_id is not None:
        snapshot = message_repo.list_up_to(parent_branch_id, cutoff_message_id)
    else:
        snapshot = message_repo.list_ordered(parent_branch_id)

    row, resumed = create_or_resume_branch(
        branch_repo,
        user_id,
        branch_id=branch_id,
        resumable=id_mode == "deterministic",
        parent_id=parent_branch_id,
        fork_point_message_id=cutoff_message_id,
    )
    logger.debug(
        "Forking %s into %s: %d messages (cutoff=%s, resumed=%s)",
        parent_branch_id,
        row.id,
        len(snapshot),
        cutoff_message_id,
        resumed,
    )

    plan = plan_copies(snapshot, row.id, id_mode=id_mode, with_branch_lineage=False)
    outcome = execute_copies(session, message_repo, plan, resume=resumed)

    return ForkResult(
        branch=row_to_info(row),
        copied_count=outcome.total,
        partial=outcome.partial,
        failures=outcome.failures,
        resumed=resumed,
    )
