"""SQLAlchemy ORM schema for Kiwi.

Defines all database tables: branches, messages, insights, _kiwi_meta.

Messages carry two identities: ``id`` is the public, randomly (or
deterministically) generated identifier, and ``seq`` is the integer
insertion sequence used to break ``created_at`` ties within a branch.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Index,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from kiwibranch.models.message import MessageRole


class Base(DeclarativeBase):
    """Base class for all Kiwi ORM models."""

    pass


class BranchRow(Base):
    """A branch: root, fork or merge.

    Structural columns are written once at creation and never updated.
    ``parent_id`` and ``merge_source_ids`` are plain columns, not foreign
    keys: a fork of a since-vanished branch still reads back.
    """

    __tablename__ = "branches"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    parent_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    fork_point_message_id: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True
    )
    merge_source_ids: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_branches_user_time", "user_id", "created_at"),
        Index("ix_branches_parent", "parent_id"),
    )


class MessageRow(Base):
    """A message owned by exactly one branch."""

    __tablename__ = "messages"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    branch_id: Mapped[str] = mapped_column(String(64), nullable=False)
    role: Mapped[MessageRole] = mapped_column(nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    metadata_json: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    is_pinned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_bookmarked: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    __table_args__ = (
        Index("ix_messages_branch_time", "branch_id", "created_at", "seq"),
    )


class InsightRow(Base):
    """Latest generated summary for a branch (one row per branch, upserted)."""

    __tablename__ = "insights"

    branch_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    metadata_json: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class KiwiMetaRow(Base):
    """Key-value metadata for the Kiwi database itself (e.g., schema version)."""

    __tablename__ = "_kiwi_meta"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
