"""Domain exception hierarchy.

Each exception maps to a specific HTTP status code at the interface layer.
Inner layers raise these; the outermost error-handler translates them.
The pipeline stages themselves never raise for malformed model output —
only the orchestration step and the adapters do.
"""

from __future__ import annotations


class ExtensionBuilderError(Exception):
    """Base exception for the entire application."""


# ── Input validation ────────────────────────────────────────────────────────


class InvalidFileNameError(ExtensionBuilderError):
    """A caller-supplied file name is not a safe relative extension path."""


class EmptyFileSetError(ExtensionBuilderError):
    """An operation that needs at least one file received none."""


# ── Generation errors ───────────────────────────────────────────────────────


class LlmError(ExtensionBuilderError):
    """Any error originating from the LLM provider."""


class NoFilesGeneratedError(ExtensionBuilderError):
    """Neither the marker convention nor the fallback yielded a single file."""


# ── Rendering ───────────────────────────────────────────────────────────────


class PreviewUnavailableError(ExtensionBuilderError):
    """The file set has no HTML entry point to render."""


# ── Configuration ───────────────────────────────────────────────────────────


class KnowledgeBaseError(ExtensionBuilderError):
    """The knowledge-base document could not be read or parsed."""
