"""Manifest consistency repair.

After every merge the manifest must declare the companion files that are
actually present (background worker, content script, options page).  The
repairer only fills gaps: it never removes or overwrites a declaration and
leaves every other manifest key untouched.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Sequence

from extension_builder.domain.entities import FileSet, GeneratedFile

logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"
BACKGROUND_NAME = "background.js"
CONTENT_SCRIPT_NAME = "content.js"
OPTIONS_PAGE_NAME = "options.html"


def _declared(manifest: dict[str, Any], key: str) -> bool:
    # JavaScript truthiness: an empty {} or [] still counts as declared.
    value = manifest.get(key)
    return not (value is None or value is False or value == "" or value == 0)


def _add_missing_declarations(manifest: dict[str, Any], names: set[str]) -> list[str]:
    """Mutate *manifest* in place; return the keys that were added."""
    added: list[str] = []

    if BACKGROUND_NAME in names and not _declared(manifest, "background"):
        manifest["background"] = {"service_worker": BACKGROUND_NAME}
        added.append("background")

    if CONTENT_SCRIPT_NAME in names and not _declared(manifest, "content_scripts"):
        manifest["content_scripts"] = [
            {"matches": ["<all_urls>"], "js": [CONTENT_SCRIPT_NAME]}
        ]
        added.append("content_scripts")

    if (
        OPTIONS_PAGE_NAME in names
        and not _declared(manifest, "options_page")
        and not _declared(manifest, "options_ui")
    ):
        manifest["options_ui"] = {"page": OPTIONS_PAGE_NAME, "open_in_tab": True}
        added.append("options_ui")

    return added


def repair_manifest(files: Sequence[GeneratedFile]) -> FileSet:
    """Return *files* with the manifest patched to declare present companions.

    Idempotent.  Without a manifest, or with one that is not a JSON object,
    the input is returned unchanged (the validator reports the problem).
    """
    files = tuple(files)
    position = next(
        (i for i, f in enumerate(files) if f.name == MANIFEST_NAME), None
    )
    if position is None:
        return files

    try:
        manifest = json.loads(files[position].content)
    except (ValueError, TypeError, RecursionError):
        logger.warning("Manifest is not valid JSON, skipping repair")
        return files

    if not isinstance(manifest, dict):
        return files

    added = _add_missing_declarations(manifest, {f.name for f in files})
    if not added:
        return files

    logger.info("Added %s to manifest", ", ".join(added))
    patched = GeneratedFile(
        name=MANIFEST_NAME,
        content=json.dumps(manifest, indent=2, ensure_ascii=False),
    )
    return files[:position] + (patched,) + files[position + 1:]
