"""Knowledge-base loader — reads the static prompt reference material."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from extension_builder.domain.entities import KnowledgeBase
from extension_builder.domain.exceptions import KnowledgeBaseError

logger = logging.getLogger(__name__)

DEFAULT_KNOWLEDGE_BASE_PATH = (
    Path(__file__).resolve().parent.parent / "knowledge" / "extension_knowledge_base.json"
)


def load_knowledge_base(path: Path | None = None) -> KnowledgeBase:
    """Load the knowledge base from *path* (defaults to the packaged copy)."""
    source = path or DEFAULT_KNOWLEDGE_BASE_PATH
    try:
        data = json.loads(source.read_text(encoding="utf-8"))
    except OSError as exc:
        raise KnowledgeBaseError(f"Cannot read knowledge base {source}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise KnowledgeBaseError(f"Knowledge base {source} is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise KnowledgeBaseError(f"Knowledge base {source} must be a JSON object.")

    try:
        knowledge_base = KnowledgeBase.from_dict(data)
    except (AttributeError, TypeError, ValueError) as exc:
        raise KnowledgeBaseError(f"Malformed knowledge base {source}: {exc}") from exc

    logger.info(
        "Loaded knowledge base with %d template(s) from %s",
        len(knowledge_base.templates),
        source,
    )
    return knowledge_base
