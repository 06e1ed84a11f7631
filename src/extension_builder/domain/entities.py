"""Domain entities — pure data structures with no external dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class FileLanguage(str, Enum):
    """Language tag derived from a generated file's extension."""

    JSON = "json"
    HTML = "html"
    CSS = "css"
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    MARKDOWN = "markdown"
    PLAINTEXT = "plaintext"

    @classmethod
    def from_filename(cls, name: str) -> FileLanguage:
        """Classify *name* by its lowercased extension (unknown → plaintext)."""
        if not isinstance(name, str) or "." not in name:
            return cls.PLAINTEXT
        ext = name.rsplit(".", maxsplit=1)[-1].lower()
        return _EXTENSION_LANGUAGES.get(ext, cls.PLAINTEXT)


_EXTENSION_LANGUAGES: dict[str, FileLanguage] = {
    "json": FileLanguage.JSON,
    "html": FileLanguage.HTML,
    "htm": FileLanguage.HTML,
    "css": FileLanguage.CSS,
    "js": FileLanguage.JAVASCRIPT,
    "mjs": FileLanguage.JAVASCRIPT,
    "jsx": FileLanguage.JAVASCRIPT,
    "ts": FileLanguage.TYPESCRIPT,
    "tsx": FileLanguage.TYPESCRIPT,
    "md": FileLanguage.MARKDOWN,
    "txt": FileLanguage.PLAINTEXT,
}


class GenerationMode(str, Enum):
    """How a new batch of files relates to the session's existing files."""

    AUTO = "auto"  # keyword heuristic
    UPDATE = "update"
    FRESH = "fresh"


class PreviewPlatform(str, Enum):
    """Browser family whose runtime API is mocked in the live preview."""

    CHROME = "chrome"
    FIREFOX = "firefox"


@dataclass(frozen=True, slots=True)
class GeneratedFile:
    """A single generated extension source file.

    ``name`` doubles as the relative path inside the extension.  The
    language tag is always derived from the name and cannot be set.
    """

    name: str
    content: str

    @property
    def path(self) -> str:
        return self.name

    @property
    def language(self) -> FileLanguage:
        return FileLanguage.from_filename(self.name)


FileSet = tuple[GeneratedFile, ...]


@dataclass(frozen=True, slots=True)
class ConversationTurn:
    """One prompt / response exchange, kept only as context for later turns."""

    prompt: str
    explanation: str = ""
    file_names: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ValidationReport:
    """Outcome of validating a file set."""

    is_valid: bool
    missing_required: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ExtensionMetadata:
    """Name / version / description read from the manifest."""

    name: str = "Extension"
    version: str = "1.0.0"
    description: str = "Chrome Extension"


@dataclass(frozen=True, slots=True)
class GenerationResult:
    """The final structured output returned to the caller."""

    response: str
    explanation: str
    files: FileSet
    new_files: FileSet
    is_update: bool
    validation: ValidationReport


@dataclass(frozen=True, slots=True)
class GenerationEvent:
    """A streaming notification emitted while a generation is in flight.

    ``kind`` is ``"chunk"`` (``text`` set), ``"file"`` (``file`` set) or
    ``"result"`` (``result`` set).
    """

    kind: str
    text: str = ""
    file: GeneratedFile | None = None
    result: GenerationResult | None = None


# ── Knowledge base ──────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ExtensionTemplate:
    """A reusable extension blueprint matched against prompt keywords."""

    key: str
    name: str
    keywords: tuple[str, ...]
    structure: dict[str, Any] = field(default_factory=dict)
    code_patterns: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class KnowledgeBase:
    """Static reference material injected into every generation prompt."""

    templates: tuple[ExtensionTemplate, ...] = ()
    best_practices: dict[str, Any] = field(default_factory=dict)
    ui_patterns: dict[str, Any] = field(default_factory=dict)
    common_patterns: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> KnowledgeBase:
        """Build a knowledge base from its JSON document form."""
        raw_templates = data.get("templates") or {}
        templates = tuple(
            ExtensionTemplate(
                key=key,
                name=str(tpl.get("name", key)),
                keywords=tuple(str(k).lower() for k in tpl.get("keywords", [])),
                structure=dict(tpl.get("structure") or {}),
                code_patterns=dict(tpl.get("code_patterns") or {}),
            )
            for key, tpl in raw_templates.items()
        )
        return cls(
            templates=templates,
            best_practices=dict(data.get("best_practices") or {}),
            ui_patterns=dict(data.get("ui_patterns") or {}),
            common_patterns=dict(data.get("common_patterns") or {}),
        )
