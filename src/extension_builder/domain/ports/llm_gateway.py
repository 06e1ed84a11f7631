"""Port: LLM gateway — defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from typing import AsyncIterator, Protocol


class LlmGateway(Protocol):
    """Abstract contract for interacting with a large-language model."""

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Send a system + user prompt pair and return the raw completion text."""
        ...

    def stream(self, system_prompt: str, user_prompt: str) -> AsyncIterator[str]:
        """Send a system + user prompt pair and yield text chunks as they arrive."""
        ...
