"""Message domain model for Kiwi.

MessageInfo is the SDK-facing model returned when querying a branch log.
MessageRole is the enum of accepted speaker roles.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import TypedDict

from pydantic import BaseModel

# Reserved lineage keys added to metadata by fork and merge copies.
ORIGINAL_MESSAGE_ID = "originalMessageId"
ORIGINAL_BRANCH_ID = "originalBranchId"


class MessageMetadata(TypedDict, total=False):
    """Known metadata keys on a MessageInfo.

    ``total=False`` means all keys are optional -- callers may also store
    arbitrary extra keys, so ``MessageInfo.metadata`` stays a plain dict.
    """

    originalMessageId: str
    originalBranchId: str
    usage: dict
    llm_type: str


class MessageRole(str, enum.Enum):
    """Speaker of a message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"

    def __repr__(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value


class MessageInfo(BaseModel):
    """SDK-facing message information model."""

    id: str
    branch_id: str
    role: MessageRole
    content: str
    metadata: dict = {}
    created_at: datetime
    is_pinned: bool = False
    is_bookmarked: bool = False

    @property
    def original_message_id(self) -> str | None:
        return self.metadata.get(ORIGINAL_MESSAGE_ID)

    @property
    def original_branch_id(self) -> str | None:
        return self.metadata.get(ORIGINAL_BRANCH_ID)

    def __str__(self) -> str:
        text = self.content
        if len(text) > 60:
            text = text[:57] + "..."
        return f"{self.id[:8]} {self.role.value}: {text}"

    def __repr__(self) -> str:
        return f"MessageInfo({self.id[:8]} {self.role.value} {self.branch_id[:8]})"
