"""Knowledge-augmented prompt builder.

The knowledge base is an explicit constructor argument rather than a
module-level constant, so tests can pass a fixture knowledge base.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Sequence

from extension_builder.domain.entities import (
    ConversationTurn,
    ExtensionTemplate,
    GeneratedFile,
    KnowledgeBase,
)
from extension_builder.services.content_assembler import assemble
from extension_builder.services.token_budget import allocate

logger = logging.getLogger(__name__)

# ── Prompt templates ────────────────────────────────────────────────────────

SYSTEM_PROMPT = """\
You are an expert browser extension developer.  Build complete, working \
Manifest V3 extensions from the user's description.

Requirements:
- Every button and input must be wired to a working event listener.
- Persist user data with chrome.storage.local.
- Use modern, responsive CSS with visual feedback on interaction.
- Only use straight quotes ' and " in code, never typographic quotes.
- Create whatever files the feature needs: manifest.json (required), \
popup.html, popup.css, popup.js, background.js, content.js, options.html, \
options.css, options.js, or any additional .js / .html / .css files.
- When updating an existing extension, only change what the user asked for \
and keep everything else intact.  Re-emit every file you change in full.

Output format (strict):

EXPLANATION: <one sentence describing what was created or updated>

=== manifest.json ===
<complete file content>

=== popup.html ===
<complete file content>

(one "=== filename ===" line before each file, nothing after the last file)
"""

_KNOWLEDGE_HEADER = "=== KNOWLEDGE BASE ==="


@dataclass(frozen=True, slots=True)
class Prompt:
    """A system / user prompt pair ready for the LLM gateway."""

    system: str
    user: str


def _dump(data: object) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


class PromptBuilder:
    """Assembles the instruction text sent to the generation model.

    Parameters
    ----------
    knowledge_base:
        Static reference material (templates and patterns).
    existing_context_tokens:
        Token budget shared by all existing-file previews.
    existing_file_preview_tokens:
        Cap for any single existing-file preview.
    max_history_turns:
        How many recent conversation turns to include.
    """

    def __init__(
        self,
        knowledge_base: KnowledgeBase,
        existing_context_tokens: int = 6_000,
        existing_file_preview_tokens: int = 1_500,
        max_history_turns: int = 6,
    ) -> None:
        self._kb = knowledge_base
        self._context_tokens = existing_context_tokens
        self._preview_tokens = existing_file_preview_tokens
        self._max_turns = max_history_turns
        self._system = self._build_system_prompt()

    @property
    def system_prompt(self) -> str:
        return self._system

    def match_templates(self, prompt: str) -> list[ExtensionTemplate]:
        """Templates whose keywords occur in *prompt* (case-insensitive)."""
        lowered = prompt.lower()
        matched = [
            tpl for tpl in self._kb.templates
            if any(keyword in lowered for keyword in tpl.keywords)
        ]
        for tpl in matched:
            logger.info("Matched template: %s", tpl.name)
        return matched

    def build(
        self,
        prompt: str,
        existing_files: Sequence[GeneratedFile] = (),
        history: Sequence[ConversationTurn] = (),
    ) -> Prompt:
        """Return the system / user prompt pair for one generation request."""
        sections: list[str] = []

        template_context = self._template_context(prompt)
        if template_context:
            sections.append(template_context)

        if history:
            sections.append(self._history_context(history))

        if existing_files:
            sections.append(self._existing_context(existing_files))

        sections.append(f"=== USER REQUEST ===\n{prompt.strip()}")
        sections.append("Generate complete, working code following the knowledge base patterns.")

        user = "\n\n".join(sections)
        logger.info("Prompt length: %d chars", len(self._system) + len(user))
        return Prompt(system=self._system, user=user)

    # ── Sections ────────────────────────────────────────────────────────

    def _build_system_prompt(self) -> str:
        kb = self._kb
        reference = {
            "best_practices": kb.best_practices,
            "ui_patterns": kb.ui_patterns,
            "common_patterns": kb.common_patterns,
            "templates": {
                tpl.key: {"name": tpl.name, "keywords": list(tpl.keywords)}
                for tpl in kb.templates
            },
        }
        return f"{SYSTEM_PROMPT}\n{_KNOWLEDGE_HEADER}\n{_dump(reference)}\n"

    def _template_context(self, prompt: str) -> str:
        parts: list[str] = []
        for tpl in self.match_templates(prompt):
            parts.append(
                f"=== MATCHED TEMPLATE: {tpl.name} ===\n"
                f"Structure: {_dump(tpl.structure)}\n"
                f"Code Patterns: {_dump(tpl.code_patterns)}"
            )
        return "\n\n".join(parts)

    def _history_context(self, history: Sequence[ConversationTurn]) -> str:
        recent = list(history)[-self._max_turns:] if self._max_turns > 0 else []
        lines = ["=== CONVERSATION SO FAR ==="]
        for turn in recent:
            lines.append(f"User: {turn.prompt.strip()}")
            if turn.explanation:
                lines.append(f"Result: {turn.explanation.strip()}")
            if turn.file_names:
                lines.append(f"Files: {', '.join(turn.file_names)}")
        return "\n".join(lines)

    def _existing_context(self, files: Sequence[GeneratedFile]) -> str:
        budgeted = allocate(
            {f.name: f.content for f in files},
            total_budget=self._context_tokens,
            per_slot_max=self._preview_tokens,
        )
        logger.info(
            "Existing-file context: %s%d / %d tokens",
            "" if budgeted.exact else "at most ",
            budgeted.total_tokens,
            budgeted.budget_limit,
        )
        body = assemble(budgeted, {f.name: len(f.content) for f in files})
        return (
            "=== EXISTING FILES (PRESERVE AND UPDATE) ===\n\n"
            f"{body}\n\n"
            "IMPORTANT: Keep all existing functionality intact! "
            "Only add or modify what the user requested."
        )
