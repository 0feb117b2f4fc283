"""Abstract repository interfaces for Kiwi storage.

Defines ABC interfaces for all database operations. No SQLAlchemy
imports here -- pure abstract contracts.

Concrete implementations are in sqlite.py.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from kiwibranch.storage.schema import BranchRow, InsightRow, MessageRow


class MessageRepository(ABC):
    """Abstract interface for the per-branch message log."""

    @abstractmethod
    def get(self, message_id: str) -> MessageRow | None:
        """Get a message by id. Returns None if not found."""
        ...

    @abstractmethod
    def append(self, message: MessageRow) -> MessageRow:
        """Store a message under its branch_id.

        Branch existence is the caller's responsibility.
        """
        ...

    @abstractmethod
    def save_many(self, messages: Sequence[MessageRow]) -> None:
        """Insert many messages in one flush (bulk write)."""
        ...

    @abstractmethod
    def list_ordered(self, branch_id: str) -> Sequence[MessageRow]:
        """All messages of a branch, ascending by (created_at, seq)."""
        ...

    @abstractmethod
    def list_up_to(self, branch_id: str, cutoff_message_id: str) -> Sequence[MessageRow]:
        """Messages of a branch with created_at <= the cutoff message's created_at.

        Cutoff resolution and selection happen in a single statement, so
        the result is one consistent snapshot.  Returns an empty sequence
        if the cutoff id does not resolve.
        """
        ...

    @abstractmethod
    def count_for(self, branch_id: str) -> int:
        """Number of messages written directly under branch_id."""
        ...

    @abstractmethod
    def count_by_branch(self, branch_ids: Sequence[str]) -> dict[str, int]:
        """Message counts for many branches. Missing branches map to 0."""
        ...

    @abstractmethod
    def existing_ids(self, message_ids: Sequence[str]) -> set[str]:
        """Subset of message_ids already present in storage."""
        ...

    @abstractmethod
    def update(self, message_id: str, **fields: object) -> MessageRow:
        """Update columns of a message.

        Raises MessageNotFoundError if no row matches.
        """
        ...

    @abstractmethod
    def remove(self, message_id: str) -> None:
        """Delete a message.

        Raises MessageNotFoundError if no row matches.
        """
        ...


class BranchRepository(ABC):
    """Abstract interface for the branch registry."""

    @abstractmethod
    def get(self, branch_id: str) -> BranchRow | None:
        """Get a branch by id. Returns None if not found."""
        ...

    @abstractmethod
    def save(self, branch: BranchRow) -> None:
        """Save a new branch."""
        ...

    @abstractmethod
    def list_for_user(self, user_id: str) -> Sequence[BranchRow]:
        """All branches of a user, newest first."""
        ...


class InsightRepository(ABC):
    """Abstract interface for stored branch summaries."""

    @abstractmethod
    def get(self, branch_id: str) -> InsightRow | None:
        """Get the insight for a branch. Returns None if not found."""
        ...

    @abstractmethod
    def upsert(self, branch_id: str, content: str, metadata: dict | None) -> InsightRow:
        """Create or replace the insight for a branch."""
        ...
