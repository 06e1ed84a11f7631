"""Generate-extension use case — the main orchestration pipeline.

This is the single entry point for the business logic.  It depends only on
the :class:`LlmGateway` port, the prompt builder and the pure pipeline
stages; the interface layer injects concrete adapters at runtime.

Pipeline: prompt → model → extract → merge → repair manifest → order →
validate.  Only this module raises for a failed generation; every stage it
calls degrades instead of raising.  The caller's existing file set is never
mutated, so a failed request leaves it exactly as it was.
"""

from __future__ import annotations

import logging
import re
from typing import AsyncIterator, Sequence

from extension_builder.domain.entities import (
    ConversationTurn,
    FileSet,
    GeneratedFile,
    GenerationEvent,
    GenerationMode,
    GenerationResult,
)
from extension_builder.domain.exceptions import NoFilesGeneratedError
from extension_builder.domain.ports.llm_gateway import LlmGateway
from extension_builder.services.extension_validator import validate_extension
from extension_builder.services.file_extractor import (
    MIN_CONTENT_LENGTH,
    StreamingFileExtractor,
    extract_files,
)
from extension_builder.services.file_merger import merge_files, resolve_update
from extension_builder.services.file_ordering import order_files
from extension_builder.services.manifest_repairer import repair_manifest
from extension_builder.services.prompt_builder import PromptBuilder

logger = logging.getLogger(__name__)

_EXPLANATION_RE = re.compile(r"EXPLANATION:\s*(.+?)(?=\n|$)", re.IGNORECASE)

NO_FILES_MESSAGE = "No files were generated. Please try a more specific prompt."


def extract_explanation(text: str) -> str:
    """The one-line ``EXPLANATION:`` the model puts before its files."""
    match = _EXPLANATION_RE.search(text)
    return match.group(1).strip() if match else ""


class GenerateExtensionUseCase:
    """Orchestrates the full prompt → file set pipeline.

    Parameters
    ----------
    llm_gateway:
        Adapter that can send prompts to an LLM.
    prompt_builder:
        Builds the knowledge-augmented prompt for each request.
    min_file_chars:
        Extracted files shorter than this are dropped as noise.
    """

    def __init__(
        self,
        llm_gateway: LlmGateway,
        prompt_builder: PromptBuilder,
        min_file_chars: int = MIN_CONTENT_LENGTH,
    ) -> None:
        self._llm = llm_gateway
        self._prompts = prompt_builder
        self._min_chars = min_file_chars

    # ── Public entry points ─────────────────────────────────────────────

    async def execute(
        self,
        prompt: str,
        existing_files: Sequence[GeneratedFile] = (),
        history: Sequence[ConversationTurn] = (),
        mode: GenerationMode = GenerationMode.AUTO,
    ) -> GenerationResult:
        """Run the full pipeline on a buffered model response."""
        existing = tuple(existing_files)
        is_update = self._classify(prompt, existing, mode)

        built = self._prompts.build(prompt, existing, history)
        text = await self._llm.complete(built.system, built.user)
        logger.info("Model generated %d chars", len(text))

        return self.process_response(text, existing, is_update)

    async def stream(
        self,
        prompt: str,
        existing_files: Sequence[GeneratedFile] = (),
        history: Sequence[ConversationTurn] = (),
        mode: GenerationMode = GenerationMode.AUTO,
    ) -> AsyncIterator[GenerationEvent]:
        """Run the pipeline while reporting chunks and completed files.

        The final ``result`` event is computed from the full response text
        exactly as :meth:`execute` would compute it.
        """
        existing = tuple(existing_files)
        is_update = self._classify(prompt, existing, mode)

        built = self._prompts.build(prompt, existing, history)
        extractor = StreamingFileExtractor(self._min_chars)

        async for chunk in self._llm.stream(built.system, built.user):
            if not chunk:
                continue
            yield GenerationEvent(kind="chunk", text=chunk)
            for file in extractor.feed(chunk):
                yield GenerationEvent(kind="file", file=file)

        for file in extractor.finish():
            yield GenerationEvent(kind="file", file=file)

        logger.info("Model streamed %d chars", len(extractor.text))
        result = self.process_response(extractor.text, existing, is_update)
        yield GenerationEvent(kind="result", result=result)

    def process_response(
        self,
        text: str,
        existing_files: Sequence[GeneratedFile],
        is_update: bool,
    ) -> GenerationResult:
        """Turn raw model text into the final, validated file set."""
        new_files = extract_files(text, self._min_chars)
        if not new_files:
            raise NoFilesGeneratedError(NO_FILES_MESSAGE)

        logger.info("Generated files: %s", ", ".join(f.name for f in new_files))

        merged = merge_files(existing_files, new_files, is_update)
        final: FileSet = order_files(repair_manifest(merged))
        validation = validate_extension(final)
        if not validation.is_valid:
            logger.warning("Missing required files: %s", ", ".join(validation.missing_required))

        count = len(final)
        plural = "s" if count > 1 else ""
        return GenerationResult(
            response=f"Successfully generated {count} file{plural}.",
            explanation=extract_explanation(text)
            or f"Chrome extension with {count} file{plural}.",
            files=final,
            new_files=new_files,
            is_update=is_update,
            validation=validation,
        )

    # ── Helpers ─────────────────────────────────────────────────────────

    @staticmethod
    def _classify(
        prompt: str, existing: FileSet, mode: GenerationMode
    ) -> bool:
        is_update = resolve_update(prompt, existing, mode)
        logger.info(
            "Generating (%d existing file(s), mode=%s, update=%s)",
            len(existing),
            mode.value,
            is_update,
        )
        return is_update
