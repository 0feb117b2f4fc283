"""LLM client protocol.

Chat-completion providers are opaque collaborators: Kiwi only needs to
send a list of role/content messages and read back text and usage.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class LLMClient(Protocol):
    """Protocol for pluggable LLM clients.

    Any object with chat() and close() methods matching this signature works.
    The built-in OpenAIClient implements this protocol.  Clients are always
    passed in explicitly; Kiwi never holds a global one.
    """

    def chat(
        self,
        messages: list[dict[str, str]],
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> dict:
        """Send messages, return response dict."""
        ...

    def close(self) -> None:
        """Release underlying resources."""
        ...


def extract_content(client: object, response: dict) -> str:
    """Assistant text of a response, via the client's own extractor if it has one.

    Falls back to the OpenAI shape ``choices[0].message.content``.
    """
    custom = getattr(client, "extract_content", None)
    if callable(custom):
        return custom(response)
    from kiwibranch.llm.errors import LLMResponseError

    try:
        return response["choices"][0]["message"].get("content") or ""
    except (KeyError, IndexError, TypeError, AttributeError) as exc:
        raise LLMResponseError(
            f"Cannot extract content from response: {exc}. "
            f"Response: {response}"
        ) from exc


def extract_usage(client: object, response: dict) -> dict | None:
    """Usage dict of a response, via the client's own extractor if it has one."""
    custom = getattr(client, "extract_usage", None)
    if callable(custom):
        return custom(response)
    return response.get("usage")
