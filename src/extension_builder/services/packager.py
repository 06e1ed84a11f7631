"""Extension packager — zips a file set for download."""

from __future__ import annotations

import io
import logging
import re
import zipfile
from datetime import datetime, timezone
from typing import Sequence

from extension_builder.domain.entities import GeneratedFile
from extension_builder.domain.exceptions import EmptyFileSetError

logger = logging.getLogger(__name__)

README_NAME = "README.md"
DEFAULT_ARCHIVE_STEM = "chrome-extension"

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def render_readme(files: Sequence[GeneratedFile], generated_at: datetime) -> str:
    """Installation notes listing every file in the archive."""
    listing = "\n".join(
        f"- {f.name} ({len(f.content) / 1024:.1f}kb)" for f in files
    )
    return (
        "# Chrome Extension\n"
        "\n"
        "Generated by Extension Builder\n"
        "\n"
        "## Files Included\n"
        f"{listing}\n"
        "\n"
        "## Installation\n"
        "1. Open Chrome and go to chrome://extensions/\n"
        '2. Enable "Developer mode" in the top right\n'
        '3. Click "Load unpacked"\n'
        "4. Select the extracted folder\n"
        "\n"
        "## Testing\n"
        "- Click the extension icon in the toolbar\n"
        "- All features should work immediately\n"
        "- Check the console (F12) for any errors\n"
        "\n"
        f"Generated on: {generated_at.strftime('%Y-%m-%d %H:%M:%S %Z').strip()}\n"
    )


def archive_filename(extension_name: str) -> str:
    """``My Cool Ext`` → ``my-cool-ext.zip``."""
    slug = _SLUG_RE.sub("-", extension_name.lower()).strip("-")
    return f"{slug or DEFAULT_ARCHIVE_STEM}.zip"


def build_archive(
    files: Sequence[GeneratedFile],
    generated_at: datetime | None = None,
) -> bytes:
    """Return a deflated zip with one entry per file plus a README.

    Content is stored verbatim under each file's name.  A README is only
    generated when the file set does not already contain one.
    """
    if not files:
        raise EmptyFileSetError("There are no files to package.")

    generated_at = generated_at or datetime.now(timezone.utc)
    buffer = io.BytesIO()

    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for file in files:
            archive.writestr(file.path, file.content)
        if not any(f.name == README_NAME for f in files):
            archive.writestr(README_NAME, render_readme(files, generated_at))

    logger.info("Packaged %d file(s) (%d bytes)", len(files), buffer.tell())
    return buffer.getvalue()
