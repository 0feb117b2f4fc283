"""Shared test fixtures for Kiwi.

Provides in-memory SQLite engine, session, and repository fixtures.
"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from kiwibranch.models.message import ORIGINAL_MESSAGE_ID
from kiwibranch.storage.engine import create_kiwi_engine, init_db
from kiwibranch.storage.sqlite import (
    SqliteBranchRepository,
    SqliteInsightRepository,
    SqliteMessageRepository,
)

# Fixed base time so tests can place messages at exact offsets.
T0 = datetime(2024, 1, 1, 12, 0, 0)


@pytest.fixture
def engine():
    """In-memory SQLite engine with all tables created."""
    eng = create_kiwi_engine(":memory:")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    """Session with automatic rollback after each test."""
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)
    sess = SessionLocal()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def branch_repo(session: Session) -> SqliteBranchRepository:
    return SqliteBranchRepository(session)


@pytest.fixture
def message_repo(session: Session) -> SqliteMessageRepository:
    return SqliteMessageRepository(session)


@pytest.fixture
def insight_repo(session: Session) -> SqliteInsightRepository:
    return SqliteInsightRepository(session)


@pytest.fixture
def kiwi():
    """In-memory Kiwi, closed after the test."""
    k = make_kiwi()
    yield k
    k.close()


# ------------------------------------------------------------------
# Shared test helpers (used by test_fork.py, test_merge.py, test_query.py)
# ------------------------------------------------------------------

def at(seconds: float) -> datetime:
    """Timestamp *seconds* after T0."""
    return T0 + timedelta(seconds=seconds)


def make_kiwi(**config) -> "Kiwi":
    """Create an in-memory Kiwi for testing."""
    from kiwibranch import Kiwi, KiwiConfig
    return Kiwi.open(config=KiwiConfig(**config))


def populate_branch(
    k: "Kiwi",
    branch_id: str,
    texts: list[str],
    *,
    user_id: str = "u1",
    start: float = 0,
    step: float = 1,
) -> list["MessageInfo"]:
    """Append *texts* to *branch_id* at start, start+step, ... seconds after T0."""
    messages = []
    for i, text in enumerate(texts):
        messages.append(
            k.append(branch_id, text, user_id=user_id, created_at=at(start + i * step))
        )
    return messages


class FlakyMessageRepository(SqliteMessageRepository):
    """Message repository whose bulk write always fails and whose single
    writes fail for copies of the listed source messages."""

    def __init__(self, session, fail_sources: set[str]) -> None:
        super().__init__(session)
        self.fail_sources = fail_sources

    def save_many(self, messages):
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    def append(self, message):
        source = (message.metadata_json or {}).get(ORIGINAL_MESSAGE_ID)
        if source in self.fail_sources:
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))
        return super().append(message)
