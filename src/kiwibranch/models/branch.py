"""Branch domain models for Kiwi.

BranchInfo is the SDK-facing model returned when reading branches.
BranchSummary pairs a branch with its shallow message count.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class BranchKind(str, enum.Enum):
    """Structural variant of a branch, fixed at creation."""

    ROOT = "root"
    FORK = "fork"
    MERGE = "merge"

    def __repr__(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value


class BranchInfo(BaseModel):
    """SDK-facing branch information model.

    Not an ORM model -- used for data transfer only.
    """

    id: str
    user_id: str
    parent_id: Optional[str] = None
    fork_point_message_id: Optional[str] = None
    merge_source_ids: Optional[list[str]] = None
    created_at: datetime

    @property
    def kind(self) -> BranchKind:
        if self.merge_source_ids is not None:
            return BranchKind.MERGE
        if self.parent_id is not None:
            return BranchKind.FORK
        return BranchKind.ROOT

    def __str__(self) -> str:
        return f"{self.id[:8]} {self.kind.value}"


class BranchSummary(BaseModel):
    """A branch plus the count of rows written directly under its id.

    The count never includes ancestor or merge-source messages.
    """

    branch: BranchInfo
    message_count: int
