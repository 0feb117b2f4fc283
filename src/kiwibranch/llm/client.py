"""OpenAI-compatible chat client used for branch replies and insights.

One synchronous httpx client per instance, with tenacity retrying
rate limits, 5xx answers and connection failures.  Settings come from
constructor arguments, then ``KIWI_OPENAI_*`` environment variables.
"""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx
import tenacity

from kiwibranch.llm.errors import (
    LLMAuthError,
    LLMConfigError,
    LLMRateLimitError,
    LLMResponseError,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"

_TRANSIENT_STATUSES = frozenset({429, 500, 502, 503, 504})


def _retry_after(response: httpx.Response) -> float | None:
    raw = response.headers.get("Retry-After")
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def _check_status(response: httpx.Response) -> None:
    """Map an error response onto the LLM error hierarchy.

    401/403 become LLMAuthError and 429 becomes LLMRateLimitError; any
    other non-2xx status raises httpx.HTTPStatusError.
    """
    status = response.status_code
    if status in (401, 403):
        raise LLMAuthError(status, response.text)
    if status == 429:
        raise LLMRateLimitError(
            f"Rate limited: HTTP 429 - {response.text}",
            retry_after=_retry_after(response),
        )
    response.raise_for_status()


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, LLMRateLimitError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in _TRANSIENT_STATUSES
    return isinstance(exc, (httpx.ConnectError, httpx.ConnectTimeout))


class OpenAIClient:
    """Chat completions against any OpenAI-compatible endpoint.

    Satisfies the LLMClient protocol, so it can be handed to
    ``Kiwi.reply`` and ``Kiwi.generate_insights``.  Replies it produces
    are tagged ``llm_type="openai"`` unless the caller says otherwise.

    Usage::

        with OpenAIClient(api_key="sk-...") as client:
            k.reply("conv-1", client)
    """

    llm_type = "openai"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        default_model: str = "gpt-3.5-turbo",
        default_temperature: float | None = 0.7,
        default_max_tokens: int | None = 1000,
        timeout: float = 120.0,
        max_retries: int = 3,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Create a client.

        Args:
            api_key: Bearer token.  Falls back to ``KIWI_OPENAI_API_KEY``.
            base_url: Endpoint root.  Falls back to ``KIWI_OPENAI_BASE_URL``,
                then the public OpenAI API.
            default_model: Model used when a call names none.
            default_temperature: Temperature used when a call sets none;
                None leaves it to the server.
            default_max_tokens: Completion limit used when a call sets none;
                None leaves it to the server.
            timeout: Per-request timeout in seconds.
            max_retries: Total attempts for transient failures.
            transport: httpx transport override (tests pass MockTransport).

        Raises:
            LLMConfigError: If no API key is configured.
        """
        key = api_key or os.environ.get("KIWI_OPENAI_API_KEY", "")
        if not key:
            raise LLMConfigError(
                "No API key provided. Pass api_key= or set KIWI_OPENAI_API_KEY "
                "environment variable."
            )
        self._api_key = key
        self._base_url = (
            base_url or os.environ.get("KIWI_OPENAI_BASE_URL") or DEFAULT_BASE_URL
        ).rstrip("/")
        self.default_model = default_model
        self._defaults = {"temperature": default_temperature, "max_tokens": default_max_tokens}
        self._max_retries = max_retries
        self._http = httpx.Client(
            timeout=timeout,
            transport=transport,
            headers={"Authorization": f"Bearer {key}"},
        )

    def _payload(
        self, messages: list[dict[str, str]], model: str | None, options: dict[str, Any]
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"model": model or self.default_model, "messages": messages}
        for name, default in self._defaults.items():
            value = options.pop(name, None)
            if value is None:
                value = default
            if value is not None:
                payload[name] = value
        payload.update(options)
        return payload

    def _post(self, payload: dict[str, Any]) -> dict:
        response = self._http.post(f"{self._base_url}/chat/completions", json=payload)
        _check_status(response)
        data = response.json()
        if "choices" not in data:
            raise LLMResponseError(
                f"Unexpected response format: missing 'choices' key. Response: {data}"
            )
        return data

    def chat(
        self,
        messages: list[dict[str, str]],
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> dict:
        """Send a conversation and return the raw completion dict.

        Extra keyword arguments are added to the request body as-is.

        Raises:
            LLMAuthError: On 401/403, without retrying.
            LLMRateLimitError: On 429 once attempts are exhausted.
            LLMResponseError: If the body has no ``choices``.
            httpx.HTTPStatusError: On other error statuses.
        """
        options = dict(kwargs, temperature=temperature, max_tokens=max_tokens)
        payload = self._payload(messages, model, options)
        retrying = tenacity.Retrying(
            retry=tenacity.retry_if_exception(_is_transient),
            wait=tenacity.wait_exponential(multiplier=1, min=1, max=30)
            + tenacity.wait_random(0, 2),
            stop=tenacity.stop_after_attempt(self._max_retries),
            before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return retrying(self._post, payload)

    def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        self._http.close()

    def __enter__(self) -> OpenAIClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    @staticmethod
    def extract_content(response: dict) -> str:
        """Text of the first choice (empty string for a null content).

        Raises:
            LLMResponseError: If the response has no first choice message.
        """
        try:
            return response["choices"][0]["message"].get("content") or ""
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMResponseError(
                f"Cannot extract content from response: {exc}. Response: {response}"
            ) from exc

    @staticmethod
    def extract_usage(response: dict) -> dict | None:
        return response.get("usage")
