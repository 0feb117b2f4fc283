"""LLM client infrastructure for Kiwi.

Provides an OpenAI-compatible HTTP client and the pluggable LLM protocol
used by branch insights and assistant replies.
"""

from kiwibranch.llm.client import OpenAIClient
from kiwibranch.llm.errors import (
    LLMAuthError,
    LLMClientError,
    LLMConfigError,
    LLMRateLimitError,
    LLMResponseError,
)
from kiwibranch.llm.protocols import LLMClient, extract_content, extract_usage

__all__ = [
    "OpenAIClient",
    "LLMClient",
    "extract_content",
    "extract_usage",
    "LLMClientError",
    "LLMConfigError",
    "LLMRateLimitError",
    "LLMAuthError",
    "LLMResponseError",
]
