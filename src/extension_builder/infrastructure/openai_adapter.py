"""OpenAI adapter — implements the LlmGateway port."""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator

import httpx
from openai import (
    APIConnectionError,
    APITimeoutError,
    AsyncOpenAI,
    AuthenticationError,
    OpenAIError,
    RateLimitError,
)

from extension_builder.domain.exceptions import LlmError

logger = logging.getLogger(__name__)


class OpenAIAdapter:
    """Concrete ``LlmGateway`` backed by the OpenAI chat-completions API."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        *,
        temperature: float = 0.7,
        max_tokens: int = 8_000,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = AsyncOpenAI(api_key=api_key, max_retries=3, http_client=http_client)
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens

    def _request(self, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        return {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self._temperature,
            "max_tokens": self._max_tokens,
        }

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Send a system + user prompt and return the completion text."""
        try:
            response = await self._client.chat.completions.create(
                **self._request(system_prompt, user_prompt)
            )

            if not response.choices:
                raise LlmError("LLM returned no response choices.")

            content = response.choices[0].message.content
            if not content:
                raise LlmError("LLM returned an empty response.")

            return content

        except LlmError:
            raise

        except Exception as exc:
            raise _translate(exc) from exc

    async def stream(self, system_prompt: str, user_prompt: str) -> AsyncIterator[str]:
        """Send a system + user prompt and yield text deltas as they arrive."""
        try:
            response = await self._client.chat.completions.create(
                **self._request(system_prompt, user_prompt), stream=True
            )
            async for chunk in response:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta

        except Exception as exc:
            raise _translate(exc) from exc

    async def close(self) -> None:
        """Release underlying HTTP resources."""
        await self._client.close()


def _translate(exc: Exception) -> LlmError:
    """Map a provider exception to :class:`LlmError`, keeping its message."""
    if isinstance(exc, AuthenticationError):
        return LlmError(
            "Invalid OpenAI API key. "
            "Set a valid key in the OPENAI_API_KEY environment variable."
        )

    if isinstance(exc, RateLimitError):
        detail = str(exc)
        logger.error("OpenAI RateLimitError: %s", detail)
        return LlmError(f"OpenAI rate limit / quota error: {detail}")

    if isinstance(exc, APITimeoutError):
        return LlmError("LLM request timed out. Please try again.")

    if isinstance(exc, APIConnectionError):
        logger.error("OpenAI connection error: %s", exc)
        return LlmError(f"Could not reach the LLM provider: {exc}")

    if isinstance(exc, OpenAIError):
        logger.error("OpenAI error: %s", exc)

    return LlmError(f"Failed to generate code: {exc}")
