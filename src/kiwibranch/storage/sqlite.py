"""SQLite implementations of repository interfaces.

All repositories use SQLAlchemy 2.0-style queries (select() + session.execute()).
Each repository takes a Session in its constructor.  Nothing here commits;
transaction boundaries belong to the caller.
"""

from __future__ import annotations

from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from kiwibranch.exceptions import MessageNotFoundError
from kiwibranch.storage.repositories import (
    BranchRepository,
    InsightRepository,
    MessageRepository,
)
from kiwibranch.storage.schema import BranchRow, InsightRow, MessageRow, utcnow

# Columns a caller may change on an existing message.
_UPDATABLE = frozenset({"content", "metadata_json", "is_pinned", "is_bookmarked"})


class SqliteMessageRepository(MessageRepository):
    """SQLite implementation of the message log."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, message_id: str) -> MessageRow | None:
        stmt = select(MessageRow).where(MessageRow.id == message_id)
        return self._session.execute(stmt).scalar_one_or_none()

    def append(self, message: MessageRow) -> MessageRow:
        self._session.add(message)
        self._session.flush()
        return message

    def save_many(self, messages: Sequence[MessageRow]) -> None:
        self._session.add_all(messages)
        self._session.flush()

    def list_ordered(self, branch_id: str) -> Sequence[MessageRow]:
        stmt = (
            select(MessageRow)
            .where(MessageRow.branch_id == branch_id)
            .order_by(MessageRow.created_at, MessageRow.seq)
        )
        return list(self._session.execute(stmt).scalars().all())

    def list_up_to(self, branch_id: str, cutoff_message_id: str) -> Sequence[MessageRow]:
        cutoff_time = (
            select(MessageRow.created_at)
            .where(MessageRow.id == cutoff_message_id)
            .scalar_subquery()
        )
        stmt = (
            select(MessageRow)
            .where(
                MessageRow.branch_id == branch_id,
                MessageRow.created_at <= cutoff_time,
            )
            .order_by(MessageRow.created_at, MessageRow.seq)
        )
        return list(self._session.execute(stmt).scalars().all())

    def count_for(self, branch_id: str) -> int:
        stmt = select(func.count()).select_from(MessageRow).where(
            MessageRow.branch_id == branch_id
        )
        return self._session.execute(stmt).scalar_one()

    def count_by_branch(self, branch_ids: Sequence[str]) -> dict[str, int]:
        counts = {branch_id: 0 for branch_id in branch_ids}
        if not counts:
            return counts
        stmt = (
            select(MessageRow.branch_id, func.count())
            .where(MessageRow.branch_id.in_(list(counts)))
            .group_by(MessageRow.branch_id)
        )
        for branch_id, count in self._session.execute(stmt).all():
            counts[branch_id] = count
        return counts

    def existing_ids(self, message_ids: Sequence[str]) -> set[str]:
        if not message_ids:
            return set()
        stmt = select(MessageRow.id).where(MessageRow.id.in_(list(message_ids)))
        return set(self._session.execute(stmt).scalars().all())

    def update(self, message_id: str, **fields: object) -> MessageRow:
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update message columns: {sorted(unknown)}")
        row = self.get(message_id)
        if row is None:
            raise MessageNotFoundError(message_id)
        for name, value in fields.items():
            setattr(row, name, value)
        self._session.flush()
        return row

    def remove(self, message_id: str) -> None:
        row = self.get(message_id)
        if row is None:
            raise MessageNotFoundError(message_id)
        self._session.delete(row)
        self._session.flush()


class SqliteBranchRepository(BranchRepository):
    """SQLite implementation of the branch registry."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, branch_id: str) -> BranchRow | None:
        stmt = select(BranchRow).where(BranchRow.id == branch_id)
        return self._session.execute(stmt).scalar_one_or_none()

    def save(self, branch: BranchRow) -> None:
        self._session.add(branch)
        self._session.flush()

    def list_for_user(self, user_id: str) -> Sequence[BranchRow]:
        stmt = (
            select(BranchRow)
            .where(BranchRow.user_id == user_id)
            .order_by(BranchRow.created_at.desc())
        )
        return list(self._session.execute(stmt).scalars().all())


class SqliteInsightRepository(InsightRepository):
    """SQLite implementation of insight storage."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, branch_id: str) -> InsightRow | None:
        stmt = select(InsightRow).where(InsightRow.branch_id == branch_id)
        return self._session.execute(stmt).scalar_one_or_none()

    def upsert(self, branch_id: str, content: str, metadata: dict | None) -> InsightRow:
        now = utcnow()
        row = self.get(branch_id)
        if row is None:
            row = InsightRow(
                branch_id=branch_id,
                content=content,
                metadata_json=metadata,
                created_at=now,
                updated_at=now,
            )
            self._session.add(row)
        else:
            row.content = content
            row.metadata_json = metadata
            row.updated_at = now
        self._session.flush()
        return row
