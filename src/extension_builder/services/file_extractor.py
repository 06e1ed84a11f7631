"""File block extraction — turns raw model output into named source files.

The model is asked to emit files using a delimiter convention::

    EXPLANATION: one sentence

    === manifest.json ===
    { ... }

    === popup.html ===
    <!DOCTYPE html> ...

The primary path is a small line-based lexer with two states
(``SEEKING_MARKER`` and ``IN_CONTENT``).  A marker is only recognised when it
occupies a whole line and names a valid file; ``a === b`` inside a script is
never a marker.  The first marker line wins: any marker line inside a span
ends that span, there is no escaping.

When the model ignores the convention entirely the fallback path recovers
generic fenced code blocks and names them by position.  That naming is a
best-effort guess.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from extension_builder.domain.entities import FileLanguage, FileSet, GeneratedFile
from extension_builder.domain.value_objects import FILENAME_PATTERN, FileName
from extension_builder.services.content_normalizer import normalize_content

logger = logging.getLogger(__name__)

MIN_CONTENT_LENGTH = 10

_MARKER_RE = re.compile(rf"^[ \t]*===[ \t]*(?P<name>{FILENAME_PATTERN})[ \t]*===[ \t]*$")

_FENCED_BLOCK_RE = re.compile(
    r"```(?P<lang>[A-Za-z0-9_+\-]*)[ \t]*\r?\n(?P<body>.*?)```",
    re.DOTALL,
)

_FENCE_LANGUAGES: dict[str, FileLanguage] = {
    "json": FileLanguage.JSON,
    "html": FileLanguage.HTML,
    "htm": FileLanguage.HTML,
    "css": FileLanguage.CSS,
    "js": FileLanguage.JAVASCRIPT,
    "javascript": FileLanguage.JAVASCRIPT,
    "mjs": FileLanguage.JAVASCRIPT,
}

# Positional names for fallback blocks; overflow uses the numbered pattern.
_FALLBACK_NAMES: dict[FileLanguage, tuple[tuple[str, ...], str]] = {
    FileLanguage.HTML: (("popup.html", "options.html"), "page{index}.html"),
    FileLanguage.CSS: (("popup.css", "options.css"), "style{index}.css"),
    FileLanguage.JAVASCRIPT: (
        ("popup.js", "background.js", "content.js"),
        "script{index}.js",
    ),
}


class _LexState(str, Enum):
    SEEKING_MARKER = "seeking_marker"
    IN_CONTENT = "in_content"


@dataclass(frozen=True, slots=True)
class RawBlock:
    """A delimiter-marked span before normalization.

    ``closed`` is True once a following marker has been seen; the last block
    of a still-streaming response is open.
    """

    name: str
    content: str
    closed: bool


# ── Primary path: marker lexer ──────────────────────────────────────────────


def _marker_name(line: str) -> str | None:
    match = _MARKER_RE.match(line.rstrip("\r\n"))
    if not match:
        return None
    name = match["name"].strip()
    return name if FileName.is_valid(name) else None


def _split_lines(text: str) -> list[str]:
    """Split on ``\\n`` only, keeping terminators; a final partial line is kept."""
    parts = text.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


class _BlockLexer:
    """Line-at-a-time lexer shared by batch and streaming extraction."""

    def __init__(self) -> None:
        self._state = _LexState.SEEKING_MARKER
        self._name = ""
        self._lines: list[str] = []

    def push(self, line: str) -> RawBlock | None:
        """Consume one line; return the block it closes, if any."""
        name = _marker_name(line)

        if self._state is _LexState.SEEKING_MARKER:
            if name is not None:
                self._name, self._lines = name, []
                self._state = _LexState.IN_CONTENT
            return None

        if name is None:
            self._lines.append(line)
            return None

        closed = RawBlock(self._name, "".join(self._lines), closed=True)
        self._name, self._lines = name, []
        return closed

    def close(self) -> RawBlock | None:
        """End of input: return the still-open block, if any."""
        if self._state is not _LexState.IN_CONTENT:
            return None
        block = RawBlock(self._name, "".join(self._lines), closed=False)
        self._state = _LexState.SEEKING_MARKER
        self._name, self._lines = "", []
        return block


def scan_blocks(text: str) -> list[RawBlock]:
    """Split *text* into marker-delimited blocks, in source order."""
    lexer = _BlockLexer()
    blocks = [block for line in _split_lines(text) if (block := lexer.push(line)) is not None]
    last = lexer.close()
    if last is not None:
        blocks.append(last)
    return blocks


def _build_file(block: RawBlock, min_length: int) -> GeneratedFile | None:
    if not block.name:
        logger.warning("Empty filename, skipping block")
        return None

    content = normalize_content(block.content)
    if len(content) < min_length:
        logger.warning(
            "File %s too short (%d chars), skipping", block.name, len(content)
        )
        return None

    file = GeneratedFile(name=block.name, content=content)
    logger.debug("Parsed %s (%s, %d chars)", file.name, file.language.value, len(content))
    return file


# ── Fallback path: fenced code blocks ───────────────────────────────────────


def _fallback_name(language: FileLanguage, index: int) -> str:
    known, pattern = _FALLBACK_NAMES[language]
    if index < len(known):
        return known[index]
    return pattern.format(index=index)


def extract_fenced_files(text: str, min_length: int = MIN_CONTENT_LENGTH) -> list[GeneratedFile]:
    """Recover files from generic fenced code blocks, naming them by position.

    Only the first JSON block is kept (as the manifest).  Output order is
    JSON, then HTML, CSS and JS blocks each in source order.
    """
    buckets: dict[FileLanguage, list[str]] = {
        FileLanguage.JSON: [],
        FileLanguage.HTML: [],
        FileLanguage.CSS: [],
        FileLanguage.JAVASCRIPT: [],
    }
    for match in _FENCED_BLOCK_RE.finditer(text):
        language = _FENCE_LANGUAGES.get(match["lang"].lower())
        if language is not None:
            buckets[language].append(match["body"])

    files: list[GeneratedFile] = []

    def _add(name: str, body: str) -> None:
        content = normalize_content(body)
        if len(content) < min_length:
            logger.warning("Fallback block %s too short (%d chars), skipping", name, len(content))
            return
        files.append(GeneratedFile(name=name, content=content))

    if buckets[FileLanguage.JSON]:
        _add("manifest.json", buckets[FileLanguage.JSON][0])

    for language in (FileLanguage.HTML, FileLanguage.CSS, FileLanguage.JAVASCRIPT):
        for index, body in enumerate(buckets[language]):
            _add(_fallback_name(language, index), body)

    logger.info("Fallback parsing found %d file(s)", len(files))
    return files


# ── Public API ──────────────────────────────────────────────────────────────


def extract_files(text: str, min_length: int = MIN_CONTENT_LENGTH) -> FileSet:
    """Extract every file from *text*; empty when nothing is recoverable.

    Callers must treat an empty result as a failed generation.
    """
    if not isinstance(text, str) or not text:
        return ()

    files = [
        file
        for block in scan_blocks(text)
        if (file := _build_file(block, min_length)) is not None
    ]

    if not files:
        logger.warning("No files found with === markers, trying fenced code blocks")
        files = extract_fenced_files(text, min_length)

    return tuple(files)


class StreamingFileExtractor:
    """Incremental extractor for a response that arrives in chunks.

    :meth:`feed` reports each file as soon as the following marker line is
    complete; :meth:`finish` reports the trailing block.  Every line is lexed
    exactly once, so the total cost is linear in the response size.  This is
    a notification channel only, the authoritative file set is always
    computed from the complete text.
    """

    def __init__(self, min_length: int = MIN_CONTENT_LENGTH) -> None:
        self._min_length = min_length
        self._chunks: list[str] = []
        self._lexer = _BlockLexer()
        self._partial = ""
        self._finished = False

    @property
    def text(self) -> str:
        return "".join(self._chunks)

    def feed(self, chunk: str) -> list[GeneratedFile]:
        """Append *chunk* and return the files completed by it."""
        self._chunks.append(chunk)
        if "\n" not in chunk:
            self._partial += chunk
            return []

        head, _, self._partial = (self._partial + chunk).rpartition("\n")
        return self._build(
            self._lexer.push(line + "\n") for line in head.split("\n")
        )

    def finish(self) -> list[GeneratedFile]:
        """Flush the last (open) block once the stream has ended."""
        if self._finished:
            return []
        self._finished = True

        closed = self._lexer.push(self._partial) if self._partial else None
        self._partial = ""
        return self._build([closed, self._lexer.close()])

    def _build(self, blocks: Iterable[RawBlock | None]) -> list[GeneratedFile]:
        return [
            file
            for block in blocks
            if block is not None
            and (file := _build_file(block, self._min_length)) is not None
        ]
