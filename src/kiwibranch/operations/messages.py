"""Message log operations for Kiwi.

Append, edit, flag and delete individual messages.  Validation happens
before any write, so a rejected request leaves no partial state.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from kiwibranch.exceptions import RequestValidationError
from kiwibranch.models.message import MessageInfo, MessageRole
from kiwibranch.operations.branch import ensure_root_branch, require_branch, require_id
from kiwibranch.operations.query import row_to_info
from kiwibranch.storage.schema import MessageRow, utcnow

if TYPE_CHECKING:
    from kiwibranch.storage.repositories import BranchRepository, MessageRepository


def coerce_role(role: str | MessageRole) -> MessageRole:
    """Parse a role string, raising RequestValidationError for unknown roles."""
    try:
        return MessageRole(role)
    except ValueError:
        allowed = ", ".join(r.value for r in MessageRole)
        raise RequestValidationError(
            "role", f"must be one of: {allowed} (got {role!r})"
        ) from None


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _check_metadata(metadata: Any) -> dict:
    if metadata is None:
        return {}
    if not isinstance(metadata, dict):
        raise RequestValidationError("metadata", "must be a mapping")
    return dict(metadata)


def append_message(
    branch_id: str,
    content: str,
    *,
    branch_repo: BranchRepository,
    message_repo: MessageRepository,
    role: str | MessageRole = MessageRole.USER,
    metadata: dict | None = None,
    user_id: str | None = None,
    created_at: datetime | None = None,
) -> MessageInfo:
    """Append a message to a branch.

    With *user_id*, an unknown branch id is created as a root branch
    owned by that user (first message of a new conversation).  Without
    it, the branch must already exist.

    Args:
        branch_id: Owning branch.
        content: Message text.  Must be non-empty.
        branch_repo: Branch repository.
        message_repo: Message repository.
        role: ``user``, ``assistant`` or ``system``.
        metadata: Free-form key/value map.
        user_id: Owner used for implicit root creation.
        created_at: Explicit timestamp (imports).  Defaults to now (UTC).
            Aware values are converted to naive UTC.

    Raises:
        RequestValidationError: On empty branch_id/content or bad role.
        BranchNotFoundError: If the branch is unknown and no user_id given.
    """
    require_id("branch_id", branch_id)
    if not content:
        raise RequestValidationError("content", "is required")
    parsed_role = coerce_role(role)
    meta = _check_metadata(metadata)
    if user_id is not None:
        require_id("user_id", user_id)
        ensure_root_branch(branch_repo, branch_id, user_id)
    else:
        require_branch(branch_repo, branch_id)

    row = MessageRow(
        id=uuid.uuid4().hex,
        branch_id=branch_id,
        role=parsed_role,
        content=content,
        metadata_json=meta,
        created_at=_as_naive_utc(created_at) if created_at is not None else utcnow(),
        is_pinned=False,
        is_bookmarked=False,
    )
    return row_to_info(message_repo.append(row))


def update_message(
    message_id: str,
    message_repo: MessageRepository,
    *,
    content: str | None = None,
    metadata: dict | None = None,
    is_pinned: bool | None = None,
    is_bookmarked: bool | None = None,
) -> MessageInfo:
    """Change the content, metadata or flags of a message.

    Only arguments that are not None are written.  Metadata replaces
    the stored map as a whole.

    Raises:
        RequestValidationError: On empty message_id, empty content or
            nothing to update.
        MessageNotFoundError: If no message has this id.
    """
    require_id("message_id", message_id)
    fields: dict[str, object] = {}
    if content is not None:
        if not content:
            raise RequestValidationError("content", "cannot be empty")
        fields["content"] = content
    if metadata is not None:
        fields["metadata_json"] = _check_metadata(metadata)
    if is_pinned is not None:
        fields["is_pinned"] = bool(is_pinned)
    if is_bookmarked is not None:
        fields["is_bookmarked"] = bool(is_bookmarked)
    if not fields:
        raise RequestValidationError("message", "no fields to update")
    return row_to_info(message_repo.update(message_id, **fields))


def remove_message(message_id: str, message_repo: MessageRepository) -> None:
    """Delete a message by id (MessageNotFoundError if absent)."""
    require_id("message_id", message_id)
    message_repo.remove(message_id)
