"""Copying messages into a freshly created branch.

Shared by fork and merge.  Copies are planned up front from a snapshot,
then written as one bulk insert inside a savepoint.  If the bulk write
fails, each row is retried in its own savepoint and every failing row is
reported back as a CopyFailure instead of being dropped.
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Sequence

from sqlalchemy.exc import SQLAlchemyError

from kiwibranch.models.message import ORIGINAL_BRANCH_ID, ORIGINAL_MESSAGE_ID
from kiwibranch.models.results import CopyFailure
from kiwibranch.storage.schema import MessageRow

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from kiwibranch.models.config import CopyIdMode
    from kiwibranch.storage.repositories import MessageRepository

logger = logging.getLogger(__name__)

_RESERVED_KEYS = (ORIGINAL_MESSAGE_ID, ORIGINAL_BRANCH_ID)

# Namespace for deterministic copy ids.
_COPY_NAMESPACE = uuid.UUID("6b1d3f52-8f0e-4c35-9a55-2f6f0f4c8e11")


def copy_message_id(
    mode: CopyIdMode, dest_branch_id: str, source_id: str, occurrence: int = 0
) -> str:
    """Id for a copy of *source_id* written into *dest_branch_id*.

    ``"random"`` gives a fresh uuid4 on every attempt.  ``"deterministic"``
    derives the id from the destination, the source id and *occurrence*,
    so a retried copy into the same branch produces the same ids even if
    other messages of the source log changed in between.  *occurrence*
    numbers repeats of one source within a plan (a branch merged with
    itself).
    """
    if mode == "deterministic":
        name = f"{dest_branch_id}:{source_id}:{occurrence}"
        return uuid.uuid5(_COPY_NAMESPACE, name).hex
    return uuid.uuid4().hex


@dataclass
class CopyOutcome:
    """Counts and failures of one copy run."""

    copied: int = 0
    skipped: int = 0
    failures: list[CopyFailure] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.copied + self.skipped

    @property
    def partial(self) -> bool:
        return bool(self.failures)


def plan_copies(
    sources: Sequence[MessageRow],
    dest_branch_id: str,
    *,
    id_mode: CopyIdMode,
    with_branch_lineage: bool,
) -> list[tuple[str, dict]]:
    """Build ``(source_id, row kwargs)`` pairs for each source, in order.

    User metadata is kept, reserved lineage keys are replaced with
    pointers to the immediate source, and the pinned/bookmarked flags
    start cleared.  ``created_at`` is carried over so the copy sits at
    the same point in the conversation as its source.
    """
    plan: list[tuple[str, dict]] = []
    seen: Counter[str] = Counter()
    for src in sources:
        occurrence = seen[src.id]
        seen[src.id] += 1
        metadata = {
            k: v for k, v in (src.metadata_json or {}).items() if k not in _RESERVED_KEYS
        }
        if with_branch_lineage:
            metadata[ORIGINAL_BRANCH_ID] = src.branch_id
        metadata[ORIGINAL_MESSAGE_ID] = src.id
        plan.append((
            src.id,
            {
                "id": copy_message_id(id_mode, dest_branch_id, src.id, occurrence),
                "branch_id": dest_branch_id,
                "role": src.role,
                "content": src.content,
                "metadata_json": metadata,
                "created_at": src.created_at,
                "is_pinned": False,
                "is_bookmarked": False,
            },
        ))
    return plan


def _describe(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


def execute_copies(
    session: Session,
    message_repo: MessageRepository,
    plan: Sequence[tuple[str, dict]],
    *,
    resume: bool = False,
) -> CopyOutcome:
    """Write a copy plan into storage.

    Args:
        session: Session used for savepoints.
        message_repo: Message repository to write through.
        plan: Output of :func:`plan_copies`.
        resume: If True, rows whose id already exists are skipped
            (deterministic-id retries).

    Returns:
        CopyOutcome with written and skipped counts and per-row failures.
    """
    outcome = CopyOutcome()
    pending = list(plan)

    if resume and pending:
        present = message_repo.existing_ids([kw["id"] for _, kw in pending])
        outcome.skipped = len(present)
        pending = [(src, kw) for src, kw in pending if kw["id"] not in present]

    if not pending:
        return outcome

    nested = session.begin_nested()
    try:
        message_repo.save_many([MessageRow(**kw) for _, kw in pending])
        nested.commit()
        outcome.copied = len(pending)
        return outcome
    except SQLAlchemyError as exc:
        nested.rollback()
        logger.warning(
            "Bulk copy of %d messages failed (%s); retrying one by one",
            len(pending),
            _describe(exc),
        )

    for source_id, kw in pending:
        nested = session.begin_nested()
        try:
            message_repo.append(MessageRow(**kw))
            nested.commit()
            outcome.copied += 1
        except SQLAlchemyError as exc:
            nested.rollback()
            outcome.failures.append(
                CopyFailure(source_message_id=source_id, error=_describe(exc))
            )

    if outcome.failures:
        logger.warning(
            "%d of %d message copies failed",
            len(outcome.failures),
            len(pending),
        )
    return outcome
