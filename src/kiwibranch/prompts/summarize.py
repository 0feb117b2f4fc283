"""Summarization prompts for branch insights.

The system prompt asks for insights, topics and action items; the user
prompt is the branch log rendered as ``role: content`` lines.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from kiwibranch.models.message import MessageInfo

INSIGHT_SYSTEM: str = (
    "You are an AI assistant tasked with summarizing a conversation. "
    "Provide key insights, main topics discussed, and any action items "
    "or conclusions reached."
)


def build_insight_prompt(messages: Sequence[MessageInfo]) -> str:
    """Render a branch log as the user prompt for summarization."""
    lines = "\n".join(f"{m.role.value}: {m.content}" for m in messages)
    return f"Please summarize the following conversation:\n\n{lines}"
