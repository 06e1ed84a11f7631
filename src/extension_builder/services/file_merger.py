"""File set merging — the incremental regeneration policy.

A follow-up prompt either *updates* the session's files (upsert by name) or
starts a *fresh* build that replaces them.  Which one applies is decided by
:func:`is_update_request`, a deliberately simple keyword heuristic, unless the
caller overrides it with an explicit :class:`GenerationMode`.
"""

from __future__ import annotations

import logging
import re
from typing import Sequence

from extension_builder.domain.entities import FileSet, GeneratedFile, GenerationMode

logger = logging.getLogger(__name__)

UPDATE_KEYWORDS: tuple[str, ...] = (
    "update",
    "change",
    "modify",
    "fix",
    "add",
    "improve",
    "create",
    "new file",
    "add file",
    "enhance",
)

# Plain substring match: "add" also fires on "address".
_UPDATE_INTENT_RE = re.compile(
    "|".join(re.escape(keyword) for keyword in UPDATE_KEYWORDS),
    re.IGNORECASE,
)


def is_update_request(prompt: str, existing: Sequence[GeneratedFile]) -> bool:
    """Best-effort guess whether *prompt* refines the existing files.

    True only when there are existing files and the prompt contains an
    update-intent keyword.  When in doubt this answers False, which replaces
    the file set rather than silently merging into it.
    """
    if not existing or not prompt:
        return False
    return _UPDATE_INTENT_RE.search(prompt) is not None


def resolve_update(
    prompt: str,
    existing: Sequence[GeneratedFile],
    mode: GenerationMode = GenerationMode.AUTO,
) -> bool:
    """Apply an explicit *mode* override, falling back to the heuristic."""
    if mode is GenerationMode.FRESH:
        return False
    if mode is GenerationMode.UPDATE:
        return bool(existing)
    return is_update_request(prompt, existing)


def _upsert(base: list[GeneratedFile], incoming: Sequence[GeneratedFile]) -> list[GeneratedFile]:
    merged = list(base)
    index = {f.name: i for i, f in enumerate(merged)}
    for file in incoming:
        position = index.get(file.name)
        if position is not None:
            merged[position] = file
            logger.info("Updated: %s", file.name)
        else:
            index[file.name] = len(merged)
            merged.append(file)
            logger.info("Added: %s", file.name)
    return merged


def merge_files(
    existing: Sequence[GeneratedFile],
    incoming: Sequence[GeneratedFile],
    is_update: bool,
) -> FileSet:
    """Combine *incoming* with *existing* and return a new file set.

    * ``is_update=False`` — the result is *incoming* (a repeated name within
      the batch replaces its earlier occurrence).
    * ``is_update=True`` — same-name files are replaced in place, new names
      are appended, and files absent from *incoming* are kept untouched.
    """
    if not is_update:
        return tuple(_upsert([], incoming))
    return tuple(_upsert(list(existing), incoming))
