"""Extension validation and manifest metadata extraction.

Neither function raises: malformed input becomes a warning, a missing-file
entry, or default metadata.
"""

from __future__ import annotations

import json
from typing import Any, Sequence

from extension_builder.domain.entities import (
    ExtensionMetadata,
    GeneratedFile,
    ValidationReport,
)

REQUIRED_FILES: tuple[str, ...] = ("manifest.json", "popup.html", "popup.js")
STYLESHEET_NAME = "popup.css"
MANIFEST_NAME = "manifest.json"

_REQUIRED_MANIFEST_KEYS: tuple[str, ...] = ("manifest_version", "name", "version")


def _load_manifest(files: Sequence[GeneratedFile]) -> tuple[bool, Any]:
    """Return ``(present, parsed)``; *parsed* is ``None`` when unparsable."""
    manifest = next((f for f in files if f.name == MANIFEST_NAME), None)
    if manifest is None:
        return False, None
    try:
        return True, json.loads(manifest.content)
    except (ValueError, TypeError, RecursionError):
        return True, None


def validate_extension(files: Sequence[GeneratedFile]) -> ValidationReport:
    """Check required files and the manifest's basic structure."""
    names = {f.name for f in files}
    missing = [name for name in REQUIRED_FILES if name not in names]
    warnings: list[str] = []

    if STYLESHEET_NAME not in names:
        warnings.append(f"Missing {STYLESHEET_NAME} - extension may not be styled")

    present, parsed = _load_manifest(files)
    if present:
        if parsed is None:
            warnings.append("Manifest JSON is invalid")
        elif not isinstance(parsed, dict):
            warnings.append("Manifest JSON must be an object")
        else:
            for key in _REQUIRED_MANIFEST_KEYS:
                if not parsed.get(key):
                    warnings.append(f"Manifest missing {key}")

    return ValidationReport(
        is_valid=not missing,
        missing_required=missing,
        warnings=warnings,
    )


def extract_metadata(files: Sequence[GeneratedFile]) -> ExtensionMetadata:
    """Read name / version / description from the manifest, with defaults."""
    defaults = ExtensionMetadata()
    _, parsed = _load_manifest(files)
    if not isinstance(parsed, dict):
        return defaults
    return ExtensionMetadata(
        name=str(parsed.get("name") or defaults.name),
        version=str(parsed.get("version") or defaults.version),
        description=str(parsed.get("description") or defaults.description),
    )
