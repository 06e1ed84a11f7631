"""Content normalizer — cleans one extracted file body and tags its language.

Every function here is pure and total: malformed input degrades to a
best-effort string, never an exception.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from extension_builder.domain.entities import FileLanguage

# ── Compiled patterns ───────────────────────────────────────────────────────

_OPEN_FENCE_RE = re.compile(r"\A```[A-Za-z0-9_+\-]*[ \t]*(?:\r?\n|\Z)")
_CLOSE_FENCE_RE = re.compile(r"(?:\r?\n)?[ \t]*```[ \t]*\Z")

# A marker line that leaked into the tail of a span (often a half-streamed one)
_TRAILING_MARKER_RE = re.compile(r"(?:\A|\n)[ \t]*===[^\n]*\Z")

_TYPOGRAPHY = str.maketrans(
    {
        "‘": "'",
        "’": "'",
        "“": '"',
        "”": '"',
        "–": "-",
        "—": "-",
    }
)


@dataclass(frozen=True, slots=True)
class NormalizedContent:
    """A cleaned file body plus its language tag."""

    content: str
    language: FileLanguage


# ── Public API ──────────────────────────────────────────────────────────────


def fix_typography(text: str) -> str:
    """Replace smart quotes and en/em dashes with their ASCII equivalents."""
    return text.translate(_TYPOGRAPHY)


def strip_code_fence(text: str) -> str:
    """Remove one outer fenced-code opener and its closer, if present.

    The closer is only removed together with an opener, so a README that
    ends with its own fenced example keeps it.  Interior fences are left
    alone.
    """
    match = _OPEN_FENCE_RE.match(text)
    if not match:
        return text
    return _CLOSE_FENCE_RE.sub("", text[match.end():], count=1)


def strip_trailing_marker(text: str) -> str:
    """Cut a delimiter line that leaked onto the last line of a span."""
    return _TRAILING_MARKER_RE.sub("", text, count=1)


def classify_language(name: str) -> FileLanguage:
    """Language tag for *name*; unknown extensions map to plaintext."""
    return FileLanguage.from_filename(name)


def normalize_content(raw: str) -> str:
    """Return *raw* with marker leaks, outer fences and smart quotes removed."""
    if not isinstance(raw, str):
        return ""
    text = strip_trailing_marker(raw.strip())
    text = strip_code_fence(text.strip())
    return fix_typography(text).strip()


def normalize_file(name: str, raw: str) -> NormalizedContent:
    """Normalize one extracted block."""
    return NormalizedContent(
        content=normalize_content(raw),
        language=classify_language(name),
    )
