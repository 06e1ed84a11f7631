"""FastAPI dependency injection wiring."""

from __future__ import annotations

from functools import lru_cache

import httpx

from extension_builder.domain.entities import KnowledgeBase
from extension_builder.infrastructure.config import Settings, get_settings
from extension_builder.infrastructure.knowledge_base import load_knowledge_base
from extension_builder.infrastructure.openai_adapter import OpenAIAdapter
from extension_builder.services.generate_extension import GenerateExtensionUseCase
from extension_builder.services.prompt_builder import PromptBuilder

_http_client: httpx.AsyncClient | None = None
_openai_adapter: OpenAIAdapter | None = None


async def startup() -> None:
    """Initialise shared resources — called from the lifespan context manager."""
    global _http_client, _openai_adapter  # noqa: PLW0603

    settings = get_settings()
    _http_client = httpx.AsyncClient(timeout=httpx.Timeout(settings.request_timeout_s))
    _openai_adapter = OpenAIAdapter(
        api_key=settings.openai_api_key.get_secret_value(),
        model=settings.openai_model,
        temperature=settings.openai_temperature,
        max_tokens=settings.openai_max_tokens,
        http_client=_http_client,
    )
    # Fail fast on a broken knowledge base rather than on the first request.
    _knowledge_base()


async def shutdown() -> None:
    """Release shared resources."""
    global _http_client, _openai_adapter  # noqa: PLW0603

    if _openai_adapter:
        await _openai_adapter.close()
        _openai_adapter = None
    if _http_client:
        await _http_client.aclose()
        _http_client = None


@lru_cache(maxsize=1)
def _settings() -> Settings:
    return get_settings()


@lru_cache(maxsize=1)
def _knowledge_base() -> KnowledgeBase:
    return load_knowledge_base(_settings().knowledge_base_path)


def get_use_case() -> GenerateExtensionUseCase:
    """Build the use-case with injected adapters."""
    settings = _settings()

    assert _openai_adapter is not None, "startup() was not called"

    prompt_builder = PromptBuilder(
        knowledge_base=_knowledge_base(),
        existing_context_tokens=settings.existing_context_tokens,
        existing_file_preview_tokens=settings.existing_file_preview_tokens,
        max_history_turns=settings.max_history_turns,
    )
    return GenerateExtensionUseCase(
        llm_gateway=_openai_adapter,
        prompt_builder=prompt_builder,
        min_file_chars=settings.min_file_chars,
    )
