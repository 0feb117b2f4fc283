"""LLM-backed operations on a branch log.

Both take the LLM client as an argument: summarizing a branch into a
stored insight, and appending an assistant reply to a branch.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from kiwibranch.exceptions import NotFoundError
from kiwibranch.llm.protocols import extract_content, extract_usage
from kiwibranch.models.insight import InsightInfo
from kiwibranch.models.message import MessageInfo, MessageRole
from kiwibranch.operations.messages import append_message
from kiwibranch.operations.query import get_conversation
from kiwibranch.prompts.summarize import INSIGHT_SYSTEM, build_insight_prompt

if TYPE_CHECKING:
    from kiwibranch.llm.protocols import LLMClient
    from kiwibranch.storage.repositories import (
        BranchRepository,
        InsightRepository,
        MessageRepository,
    )
    from kiwibranch.storage.schema import InsightRow

logger = logging.getLogger(__name__)


def row_to_info(row: InsightRow) -> InsightInfo:
    """Convert an InsightRow to InsightInfo."""
    return InsightInfo(
        branch_id=row.branch_id,
        content=row.content,
        metadata=row.metadata_json,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def generate_insight(
    branch_id: str,
    client: LLMClient,
    *,
    branch_repo: BranchRepository,
    message_repo: MessageRepository,
    insight_repo: InsightRepository,
    system_prompt: str = INSIGHT_SYSTEM,
    model: str | None = None,
) -> InsightInfo:
    """Summarize a branch log and store the result as its insight.

    Raises:
        BranchNotFoundError: If the branch does not exist.
        NotFoundError: If the branch has no messages.
        LLMClientError: If the client call fails.
    """
    messages = get_conversation(branch_id, message_repo, branch_repo)
    if not messages:
        raise NotFoundError(f"No messages found for branch: {branch_id}")

    prompt = [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": build_insight_prompt(messages)},
    ]
    response = client.chat(prompt, model=model)
    content = extract_content(client, response)
    usage = extract_usage(client, response)
    logger.debug("Generated insight for %s (%d chars)", branch_id, len(content))

    return row_to_info(insight_repo.upsert(branch_id, content, usage or {}))


def generate_reply(
    branch_id: str,
    client: LLMClient,
    *,
    branch_repo: BranchRepository,
    message_repo: MessageRepository,
    system_prompt: str | None = None,
    model: str | None = None,
    llm_type: str | None = None,
) -> MessageInfo:
    """Send a branch log to the client and append the answer as an assistant message.

    The reply's metadata records the provider usage and *llm_type*
    (which provider produced it), defaulting to the client's own
    ``llm_type`` attribute when it has one.

    Raises:
        BranchNotFoundError: If the branch does not exist.
        RequestValidationError: If the client returns empty content.
        LLMClientError: If the client call fails.
    """
    history = get_conversation(branch_id, message_repo, branch_repo)
    prompt: list[dict[str, str]] = []
    if system_prompt:
        prompt.append({"role": "system", "content": system_prompt})
    prompt.extend({"role": m.role.value, "content": m.content} for m in history)

    response = client.chat(prompt, model=model)
    content = extract_content(client, response)
    metadata: dict = {"usage": extract_usage(client, response) or {}}
    llm_type = llm_type or getattr(client, "llm_type", None)
    if llm_type is not None:
        metadata["llm_type"] = llm_type

    return append_message(
        branch_id,
        content,
        branch_repo=branch_repo,
        message_repo=message_repo,
        role=MessageRole.ASSISTANT,
        metadata=metadata,
    )
