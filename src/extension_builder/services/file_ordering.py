"""Deterministic display ordering for a file set."""

from __future__ import annotations

from typing import Sequence

from extension_builder.domain.entities import FileSet, GeneratedFile

FILE_PRIORITY: tuple[str, ...] = (
    "manifest.json",
    "popup.html",
    "popup.css",
    "popup.js",
    "background.js",
    "content.js",
    "options.html",
    "options.css",
    "options.js",
)

_RANK = {name: rank for rank, name in enumerate(FILE_PRIORITY)}


def _sort_key(file: GeneratedFile) -> tuple[int, str]:
    return (_RANK.get(file.name, len(FILE_PRIORITY)), file.name)


def order_files(files: Sequence[GeneratedFile]) -> FileSet:
    """Manifest first, then the popup triad, background, content, options triad.

    Anything else follows alphabetically by name.
    """
    return tuple(sorted(files, key=_sort_key))
