"""Branch registry operations for Kiwi.

Create, resolve and validate branches.
Composes storage primitives (branch repo) into higher-level actions.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Sequence

from kiwibranch.exceptions import (
    BranchExistsError,
    BranchNotFoundError,
    InvalidBranchVariantError,
    RequestValidationError,
)
from kiwibranch.models.branch import BranchInfo
from kiwibranch.storage.schema import BranchRow, utcnow

if TYPE_CHECKING:
    from kiwibranch.storage.repositories import BranchRepository


def row_to_info(row: BranchRow) -> BranchInfo:
    """Convert a BranchRow to BranchInfo."""
    return BranchInfo(
        id=row.id,
        user_id=row.user_id,
        parent_id=row.parent_id,
        fork_point_message_id=row.fork_point_message_id,
        merge_source_ids=list(row.merge_source_ids) if row.merge_source_ids else None,
        created_at=row.created_at,
    )


def validate_variant(
    parent_id: str | None,
    fork_point_message_id: str | None,
    merge_source_ids: Sequence[str] | None,
) -> None:
    """Check that branch fields describe exactly one of root, fork or merge.

    Raises InvalidBranchVariantError on violation.
    """
    if parent_id is not None and merge_source_ids is not None:
        raise InvalidBranchVariantError(
            "a branch cannot have both parent_id and merge_source_ids"
        )
    if fork_point_message_id is not None and parent_id is None:
        raise InvalidBranchVariantError(
            "fork_point_message_id requires parent_id"
        )
    if merge_source_ids is not None:
        if len(merge_source_ids) != 2 or not all(merge_source_ids):
            raise InvalidBranchVariantError(
                "merge_source_ids must be a [source, target] pair"
            )


def require_id(field: str, value: str | None) -> str:
    """Return value, or raise RequestValidationError if it is empty."""
    if not value or not str(value).strip():
        raise RequestValidationError(field, "is required")
    return value


def create_branch(
    branch_repo: BranchRepository,
    user_id: str,
    *,
    branch_id: str | None = None,
    parent_id: str | None = None,
    fork_point_message_id: str | None = None,
    merge_source_ids: Sequence[str] | None = None,
) -> BranchRow:
    """Create and flush a new branch row.

    Args:
        branch_repo: Branch repository for storage.
        user_id: Owner of the branch.
        branch_id: Explicit id.  Generated (uuid4 hex) if omitted.
        parent_id: Set for forks.
        fork_point_message_id: Message the fork was cut at (forks only).
        merge_source_ids: ``[source, target]`` for merges.

    Returns:
        The new BranchRow.

    Raises:
        RequestValidationError: If user_id is empty.
        InvalidBranchVariantError: If the fields mix variants.
        BranchExistsError: If branch_id is already taken.
    """
    require_id("user_id", user_id)
    validate_variant(parent_id, fork_point_message_id, merge_source_ids)

    if branch_id is None:
        branch_id = uuid.uuid4().hex
    elif branch_repo.get(branch_id) is not None:
        raise BranchExistsError(branch_id)

    row = BranchRow(
        id=branch_id,
        user_id=user_id,
        parent_id=parent_id,
        fork_point_message_id=fork_point_message_id,
        merge_source_ids=list(merge_source_ids) if merge_source_ids else None,
        created_at=utcnow(),
    )
    branch_repo.save(row)
    return row


def require_branch(branch_repo: BranchRepository, branch_id: str) -> BranchRow:
    """Resolve a branch id or raise BranchNotFoundError."""
    row = branch_repo.get(branch_id)
    if row is None:
        raise BranchNotFoundError(branch_id)
    return row


def ensure_root_branch(
    branch_repo: BranchRepository, branch_id: str, user_id: str
) -> tuple[BranchRow, bool]:
    """Return the branch with this id, creating a root branch if absent.

    Used when the first message of a new conversation arrives.

    Returns:
        ``(row, created)`` where *created* is True for a new root.
    """
    row = branch_repo.get(branch_id)
    if row is not None:
        return row, False
    return create_branch(branch_repo, user_id, branch_id=branch_id), True


def create_or_resume_branch(
    branch_repo: BranchRepository,
    user_id: str,
    *,
    branch_id: str | None,
    resumable: bool,
    parent_id: str | None = None,
    fork_point_message_id: str | None = None,
    merge_source_ids: Sequence[str] | None = None,
) -> tuple[BranchRow, bool]:
    """Create the destination branch of a fork or merge, or resume it.

    A retried fork/merge may name the branch created by an earlier
    attempt.  When *resumable* is True and that branch exists with the
    same owner and structure, it is returned instead of a new one.

    Returns:
        ``(row, resumed)``.

    Raises:
        BranchExistsError: If branch_id exists and cannot be resumed.
    """
    if branch_id is not None:
        existing = branch_repo.get(branch_id)
        if existing is not None:
            same = (
                existing.user_id == user_id
                and existing.parent_id == parent_id
                and existing.fork_point_message_id == fork_point_message_id
                and (existing.merge_source_ids or None)
                == (list(merge_source_ids) if merge_source_ids else None)
            )
            if resumable and same:
                return existing, True
            raise BranchExistsError(branch_id)
    row = create_branch(
        branch_repo,
        user_id,
        branch_id=branch_id,
        parent_id=parent_id,
        fork_point_message_id=fork_point_message_id,
        merge_source_ids=merge_source_ids,
    )
    return row, False
