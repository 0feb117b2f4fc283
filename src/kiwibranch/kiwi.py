"""Kiwi -- the public SDK entry point.

Ties together storage and the branch operations into one user-facing
API: append and edit messages, fork and merge branches, list branches
and read branch logs.  A transport layer (HTTP, CLI) maps its requests
onto these methods.

Not thread-safe.  Each thread should open its own ``Kiwi``.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from kiwibranch.exceptions import MessageNotFoundError, StorageError
from kiwibranch.models.config import KiwiConfig
from kiwibranch.models.message import MessageRole
from kiwibranch.operations.branch import create_branch, require_branch, row_to_info
from kiwibranch.operations.query import row_to_info as message_row_to_info
from kiwibranch.storage.engine import create_kiwi_engine, create_session_factory, init_db
from kiwibranch.storage.sqlite import (
    SqliteBranchRepository,
    SqliteInsightRepository,
    SqliteMessageRepository,
)

if TYPE_CHECKING:
    from collections.abc import Iterator
    from datetime import datetime

    from sqlalchemy import Engine
    from sqlalchemy.orm import Session

    from kiwibranch.llm.protocols import LLMClient
    from kiwibranch.models.branch import BranchInfo, BranchSummary
    from kiwibranch.models.insight import InsightInfo
    from kiwibranch.models.message import MessageInfo
    from kiwibranch.models.results import ForkResult, MergeResult
    from kiwibranch.storage.repositories import (
        BranchRepository,
        InsightRepository,
        MessageRepository,
    )

logger = logging.getLogger(__name__)


class Kiwi:
    """Branching conversation store.

    Create one via :meth:`Kiwi.open` (recommended) or
    :meth:`Kiwi.from_components` (testing / DI).

    Example::

        with Kiwi.open() as k:
            m1 = k.append("conv-1", "Hi", user_id="u1")
            k.append("conv-1", "Hello!", role="assistant")
            fork = k.fork("conv-1", "u1", cutoff_message_id=m1.id)
            print(k.get_conversation(fork.branch.id))
    """

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def __init__(
        self,
        *,
        engine: Engine | None,
        session: Session,
        config: KiwiConfig,
        branch_repo: BranchRepository,
        message_repo: MessageRepository,
        insight_repo: InsightRepository,
    ) -> None:
        self._engine = engine
        self._session = session
        self._config = config
        self._branch_repo = branch_repo
        self._message_repo = message_repo
        self._insight_repo = insight_repo
        self._closed = False

    @classmethod
    def open(
        cls,
        path: str | None = None,
        *,
        url: str | None = None,
        config: KiwiConfig | None = None,
    ) -> Kiwi:
        """Open (or create) a Kiwi database.

        Args:
            path: SQLite path.  In-memory when neither this nor the
                config names one.
            url: Full SQLAlchemy URL; overrides *path*.
            config: Configuration.  Defaults created if *None*.  An
                explicit *path* or *url* replaces the config's value.

        Returns:
            A ready-to-use ``Kiwi`` instance.
        """
        if config is None:
            config = KiwiConfig()
        overrides = {
            key: value
            for key, value in (("db_path", path), ("db_url", url))
            if value is not None
        }
        if overrides:
            config = config.model_copy(update=overrides)

        engine = create_kiwi_engine(config.db_path, url=config.db_url)
        init_db(engine)
        session = create_session_factory(engine)()

        return cls(
            engine=engine,
            session=session,
            config=config,
            branch_repo=SqliteBranchRepository(session),
            message_repo=SqliteMessageRepository(session),
            insight_repo=SqliteInsightRepository(session),
        )

    @classmethod
    def from_components(
        cls,
        *,
        session: Session,
        branch_repo: BranchRepository | None = None,
        message_repo: MessageRepository | None = None,
        insight_repo: InsightRepository | None = None,
        config: KiwiConfig | None = None,
    ) -> Kiwi:
        """Build a Kiwi from an existing session and optional repositories.

        The caller owns the engine; :meth:`close` only closes the session.
        """
        return cls(
            engine=None,
            session=session,
            config=config or KiwiConfig(),
            branch_repo=branch_repo or SqliteBranchRepository(session),
            message_repo=message_repo or SqliteMessageRepository(session),
            insight_repo=insight_repo or SqliteInsightRepository(session),
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> KiwiConfig:
        """The configuration this instance was opened with."""
        return self._config

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[None]:
        """Run one operation as one transaction.

        Commits on success.  Any exception rolls back; driver errors are
        re-raised as StorageError so callers can tell them apart from
        validation and not-found errors.
        """
        try:
            yield
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            logger.error("%s failed: %s", operation, exc)
            raise StorageError(operation, str(getattr(exc, "orig", None) or exc)) from exc
        except BaseException:
            self._session.rollback()
            raise

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def append(
        self,
        branch_id: str,
        content: str,
        *,
        role: str | MessageRole = MessageRole.USER,
        metadata: dict | None = None,
        user_id: str | None = None,
        created_at: datetime | None = None,
    ) -> MessageInfo:
        """Append a message to a branch.

        Passing *user_id* creates a root branch with this id if none
        exists yet; otherwise the branch must exist.
        """
        from kiwibranch.operations.messages import append_message

        with self._transaction("append"):
            return append_message(
                branch_id,
                content,
                branch_repo=self._branch_repo,
                message_repo=self._message_repo,
                role=role,
                metadata=metadata,
                user_id=user_id,
                created_at=created_at,
            )

    def get_message(self, message_id: str) -> MessageInfo:
        """Fetch one message (MessageNotFoundError if absent)."""
        with self._transaction("get_message"):
            row = self._message_repo.get(message_id)
            if row is None:
                raise MessageNotFoundError(message_id)
            return message_row_to_info(row)

    def update_message(
        self,
        message_id: str,
        *,
        content: str | None = None,
        metadata: dict | None = None,
    ) -> MessageInfo:
        """Edit a message's content and/or replace its metadata."""
        from kiwibranch.operations.messages import update_message

        with self._transaction("update_message"):
            return update_message(
                message_id, self._message_repo, content=content, metadata=metadata
            )

    def remove_message(self, message_id: str) -> None:
        """Delete a message.  Copies made from it keep their lineage pointers."""
        from kiwibranch.operations.messages import remove_message

        with self._transaction("remove_message"):
            remove_message(message_id, self._message_repo)

    def pin(self, message_id: str, is_pinned: bool = True) -> MessageInfo:
        """Set or clear the pinned flag of a message."""
        from kiwibranch.operations.messages import update_message

        with self._transaction("pin"):
            return update_message(message_id, self._message_repo, is_pinned=is_pinned)

    def bookmark(self, message_id: str, is_bookmarked: bool = True) -> MessageInfo:
        """Set or clear the bookmark flag of a message (a future fork point)."""
        from kiwibranch.operations.messages import update_message

        with self._transaction("bookmark"):
            return update_message(
                message_id, self._message_repo, is_bookmarked=is_bookmarked
            )

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------

    def create_branch(self, user_id: str, *, branch_id: str | None = None) -> BranchInfo:
        """Create an empty root branch."""
        with self._transaction("create_branch"):
            return row_to_info(
                create_branch(self._branch_repo, user_id, branch_id=branch_id)
            )

    def get_branch(self, branch_id: str) -> BranchInfo:
        """Fetch one branch (BranchNotFoundError if absent)."""
        with self._transaction("get_branch"):
            return row_to_info(require_branch(self._branch_repo, branch_id))

    def fork(
        self,
        parent_branch_id: str,
        user_id: str,
        cutoff_message_id: str | None = None,
        *,
        branch_id: str | None = None,
    ) -> ForkResult:
        """Fork a branch up to an optional cutoff message.

        See :func:`kiwibranch.operations.fork.fork_branch`.  The cutoff
        policy and copy id mode come from the config.
        """
        from kiwibranch.operations.fork import fork_branch

        with self._transaction("fork"):
            result = fork_branch(
                parent_branch_id,
                user_id,
                session=self._session,
                branch_repo=self._branch_repo,
                message_repo=self._message_repo,
                cutoff_message_id=cutoff_message_id,
                missing_cutoff=self._config.missing_cutoff,
                id_mode=self._config.copy_ids,
                branch_id=branch_id,
            )
        logger.info(
            "Forked %s -> %s (%d copied, partial=%s)",
            parent_branch_id,
            result.branch.id,
            result.copied_count,
            result.partial,
        )
        return result

    def merge(
        self,
        source_branch_id: str,
        target_branch_id: str,
        user_id: str,
        *,
        branch_id: str | None = None,
    ) -> MergeResult:
        """Merge two branches into a new branch.

        See :func:`kiwibranch.operations.merge.merge_branches`.
        """
        from kiwibranch.operations.merge import merge_branches

        with self._transaction("merge"):
            result = merge_branches(
                source_branch_id,
                target_branch_id,
                user_id,
                session=self._session,
                branch_repo=self._branch_repo,
                message_repo=self._message_repo,
                id_mode=self._config.copy_ids,
                branch_id=branch_id,
            )
        logger.info(
            "Merged %s + %s -> %s (%d copied, partial=%s)",
            source_branch_id,
            target_branch_id,
            result.branch.id,
            result.merged_count,
            result.partial,
        )
        return result

    def list_branches(self, user_id: str) -> list[BranchSummary]:
        """A user's branches, newest first, each with its own message count."""
        from kiwibranch.operations.query import list_branches

        with self._transaction("list_branches"):
            return list_branches(user_id, self._branch_repo, self._message_repo)

    def get_conversation(self, branch_id: str) -> list[MessageInfo]:
        """Exactly the messages stored under *branch_id*, oldest first."""
        from kiwibranch.operations.query import get_conversation

        with self._transaction("get_conversation"):
            return get_conversation(branch_id, self._message_repo, self._branch_repo)

    # ------------------------------------------------------------------
    # LLM collaborators
    # ------------------------------------------------------------------

    def generate_insights(
        self, branch_id: str, client: LLMClient, *, model: str | None = None
    ) -> InsightInfo:
        """Summarize a branch with *client* and store the insight."""
        from kiwibranch.operations.insights import generate_insight

        with self._transaction("generate_insights"):
            return generate_insight(
                branch_id,
                client,
                branch_repo=self._branch_repo,
                message_repo=self._message_repo,
                insight_repo=self._insight_repo,
                system_prompt=self._config.summary_system_prompt,
                model=model or self._config.default_model,
            )

    def get_insight(self, branch_id: str) -> InsightInfo | None:
        """The stored insight of a branch, or None."""
        from kiwibranch.operations.insights import row_to_info as insight_row_to_info

        with self._transaction("get_insight"):
            row = self._insight_repo.get(branch_id)
            return None if row is None else insight_row_to_info(row)

    def reply(
        self,
        branch_id: str,
        client: LLMClient,
        *,
        model: str | None = None,
        system_prompt: str | None = None,
        llm_type: str | None = None,
    ) -> MessageInfo:
        """Ask *client* to continue a branch and append its answer."""
        from kiwibranch.operations.insights import generate_reply

        with self._transaction("reply"):
            return generate_reply(
                branch_id,
                client,
                branch_repo=self._branch_repo,
                message_repo=self._message_repo,
                system_prompt=system_prompt,
                model=model or self._config.default_model,
                llm_type=llm_type,
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the session and dispose the engine."""
        if self._closed:
            return
        self._closed = True
        self._session.close()
        if self._engine is not None:
            self._engine.dispose()

    def __enter__(self) -> Kiwi:
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.close()

    def __repr__(self) -> str:
        if self._closed:
            return "Kiwi(closed=True)"
        return f"Kiwi(db={self._config.db_url or self._config.db_path!r})"
