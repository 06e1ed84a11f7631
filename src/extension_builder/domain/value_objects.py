"""Value objects — self-validating domain primitives."""

from __future__ import annotations

import re
from dataclasses import dataclass

from extension_builder.domain.exceptions import InvalidFileNameError

# Shared with the extractor's marker lexer.
FILENAME_PATTERN = r"[A-Za-z0-9._\-/]+\.[A-Za-z0-9]+"

_FILENAME_RE = re.compile(rf"^{FILENAME_PATTERN}$")


@dataclass(frozen=True, slots=True)
class FileName:
    """Validated extension file name.

    Names double as archive paths, so besides the character whitelist the
    name must be relative and must not climb out of the extension root via
    ``..`` segments.
    """

    value: str

    @classmethod
    def from_string(cls, name: str) -> FileName:
        """Parse and validate a raw file name."""
        name = name.strip()
        if not cls.is_valid(name):
            raise InvalidFileNameError(
                f"Invalid file name: '{name}'. "
                "Expected a relative path like 'popup.js' or 'scripts/utils.js'."
            )
        return cls(value=name)

    @staticmethod
    def is_valid(name: str) -> bool:
        if not _FILENAME_RE.match(name):
            return False
        if name.startswith("/"):
            return False
        return all(part not in ("", "..") for part in name.split("/"))

    def __str__(self) -> str:
        return self.value
