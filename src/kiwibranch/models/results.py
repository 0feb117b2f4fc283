"""Result models for fork and merge.

Both operations create a new branch and then copy messages into it.
Copy failures do not abort the operation; they are reported here so
callers can tell a clean copy from a partial one.
"""

from __future__ import annotations

from pydantic import BaseModel

from kiwibranch.models.branch import BranchInfo


class CopyFailure(BaseModel):
    """A single message that could not be copied into the new branch."""

    source_message_id: str
    error: str


class ForkResult(BaseModel):
    """Outcome of a fork.

    ``partial`` is True when at least one copy failed; the failures are
    listed in ``failures``.  ``copied_count`` counts the copies present in
    the fork afterwards, including ones a resumed earlier attempt wrote.
    """

    branch: BranchInfo
    copied_count: int
    partial: bool = False
    failures: list[CopyFailure] = []
    resumed: bool = False


class MergeResult(BaseModel):
    """Outcome of a merge. Same partial-failure contract as ForkResult."""

    branch: BranchInfo
    merged_count: int
    partial: bool = False
    failures: list[CopyFailure] = []
    resumed: bool = False
