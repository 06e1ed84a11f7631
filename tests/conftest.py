"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

import json
from typing import AsyncIterator

import pytest

from extension_builder.domain.entities import GeneratedFile, KnowledgeBase
from extension_builder.domain.exceptions import LlmError
from extension_builder.services.generate_extension import GenerateExtensionUseCase
from extension_builder.services.prompt_builder import PromptBuilder

MANIFEST = json.dumps(
    {
        "manifest_version": 3,
        "name": "Click Counter",
        "version": "1.0.0",
        "action": {"default_popup": "popup.html"},
    },
    indent=2,
)

POPUP_HTML = """<!DOCTYPE html>
<html>
<head>
  <link rel="stylesheet" href="popup.css">
</head>
<body>
  <button id="btn">Click</button>
  <script src="popup.js"></script>
</body>
</html>"""

POPUP_JS = "document.getElementById('btn').addEventListener('click', () => {});"


def marked(*files: tuple[str, str], explanation: str = "A click counter.") -> str:
    """Render files in the ``=== name ===`` model output convention."""
    parts = [f"EXPLANATION: {explanation}", ""]
    for name, content in files:
        parts.append(f"=== {name} ===")
        parts.append(content)
        parts.append("")
    return "\n".join(parts)


class FakeLlmGateway:
    """In-memory ``LlmGateway`` returning canned responses."""

    def __init__(self, response: str = "", chunk_size: int = 17, error: Exception | None = None) -> None:
        self.response = response
        self.chunk_size = chunk_size
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        if self.error:
            raise self.error
        return self.response

    async def stream(self, system_prompt: str, user_prompt: str) -> AsyncIterator[str]:
        self.calls.append((system_prompt, user_prompt))
        if self.error:
            raise self.error
        for start in range(0, len(self.response), self.chunk_size):
            yield self.response[start : start + self.chunk_size]


@pytest.fixture
def knowledge_base() -> KnowledgeBase:
    """A tiny fixture knowledge base."""
    return KnowledgeBase.from_dict(
        {
            "templates": {
                "todo_list": {
                    "name": "Todo List",
                    "keywords": ["todo", "task"],
                    "structure": {"files": ["popup.html"]},
                    "code_patterns": {"storage": "chrome.storage.local.get(['todos'])"},
                },
                "pomodoro_timer": {
                    "name": "Pomodoro Timer",
                    "keywords": ["timer", "pomodoro"],
                },
            },
            "best_practices": {"manifest": "Use manifest_version 3."},
        }
    )


@pytest.fixture
def prompt_builder(knowledge_base: KnowledgeBase) -> PromptBuilder:
    return PromptBuilder(knowledge_base)


@pytest.fixture
def basic_files() -> tuple[GeneratedFile, ...]:
    """The minimal valid three-file extension."""
    return (
        GeneratedFile("manifest.json", MANIFEST),
        GeneratedFile("popup.html", POPUP_HTML),
        GeneratedFile("popup.js", POPUP_JS),
    )


@pytest.fixture
def basic_response() -> str:
    return marked(
        ("manifest.json", MANIFEST),
        ("popup.html", POPUP_HTML),
        ("popup.js", POPUP_JS),
    )


@pytest.fixture
def fake_llm(basic_response: str) -> FakeLlmGateway:
    return FakeLlmGateway(basic_response)


@pytest.fixture
def failing_llm() -> FakeLlmGateway:
    return FakeLlmGateway(error=LlmError("Failed to generate code: boom"))


@pytest.fixture
def use_case(fake_llm: FakeLlmGateway, prompt_builder: PromptBuilder) -> GenerateExtensionUseCase:
    return GenerateExtensionUseCase(llm_gateway=fake_llm, prompt_builder=prompt_builder)
