"""Pydantic request / response DTOs for the API boundary."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator

from extension_builder.domain.entities import (
    ConversationTurn,
    ExtensionMetadata,
    FileSet,
    GeneratedFile,
    GenerationMode,
    GenerationResult,
    PreviewPlatform,
    ValidationReport,
)
from extension_builder.domain.value_objects import FileName


class FileModel(BaseModel):
    """A generated file as sent over the wire."""

    name: str
    content: str

    @field_validator("name")
    @classmethod
    def _safe_name(cls, v: str) -> str:
        stripped = v.strip()
        if not FileName.is_valid(stripped):
            msg = (
                f"Invalid file name: '{stripped}'. "
                "Expected a relative path like 'popup.js'."
            )
            raise ValueError(msg)
        return stripped

    def to_domain(self) -> GeneratedFile:
        return GeneratedFile(name=self.name, content=self.content)


class FileOut(BaseModel):
    """A generated file in a response, with its derived language tag."""

    name: str
    path: str
    content: str
    language: str

    @classmethod
    def from_domain(cls, file: GeneratedFile) -> FileOut:
        return cls(
            name=file.name,
            path=file.path,
            content=file.content,
            language=file.language.value,
        )


class TurnModel(BaseModel):
    """One earlier exchange in the conversation."""

    prompt: str
    explanation: str = ""
    file_names: list[str] = Field(default_factory=list)

    def to_domain(self) -> ConversationTurn:
        return ConversationTurn(
            prompt=self.prompt,
            explanation=self.explanation,
            file_names=tuple(self.file_names),
        )


def _files_to_domain(files: list[FileModel]) -> FileSet:
    return tuple(f.to_domain() for f in files)


def _reject_duplicates(files: list[FileModel]) -> None:
    seen: set[str] = set()
    for f in files:
        if f.name in seen:
            msg = f"Duplicate file name: '{f.name}'. File names must be unique."
            raise ValueError(msg)
        seen.add(f.name)


class GenerateRequest(BaseModel):
    """Request body for ``POST /generate`` and ``POST /generate/stream``."""

    prompt: str
    existing_files: list[FileModel] = Field(default_factory=list)
    history: list[TurnModel] = Field(default_factory=list)
    mode: GenerationMode = GenerationMode.AUTO

    @field_validator("prompt")
    @classmethod
    def _must_not_be_empty(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            msg = "prompt must not be empty."
            raise ValueError(msg)
        return stripped

    @model_validator(mode="after")
    def _unique_existing_names(self) -> GenerateRequest:
        _reject_duplicates(self.existing_files)
        return self

    def existing(self) -> FileSet:
        return _files_to_domain(self.existing_files)

    def turns(self) -> list[ConversationTurn]:
        return [t.to_domain() for t in self.history]


class FilesRequest(BaseModel):
    """Request body carrying a caller-held file set."""

    files: list[FileModel] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_names(self) -> FilesRequest:
        _reject_duplicates(self.files)
        return self

    def to_domain(self) -> FileSet:
        return _files_to_domain(self.files)


class PreviewRequest(FilesRequest):
    """Request body for ``POST /preview``."""

    platform: PreviewPlatform = PreviewPlatform.CHROME


class ValidationOut(BaseModel):
    is_valid: bool
    missing_required: list[str]
    warnings: list[str]

    @classmethod
    def from_domain(cls, report: ValidationReport) -> ValidationOut:
        return cls(
            is_valid=report.is_valid,
            missing_required=list(report.missing_required),
            warnings=list(report.warnings),
        )


class MetadataOut(BaseModel):
    name: str
    version: str
    description: str

    @classmethod
    def from_domain(cls, metadata: ExtensionMetadata) -> MetadataOut:
        return cls(
            name=metadata.name,
            version=metadata.version,
            description=metadata.description,
        )


class GenerateResponse(BaseModel):
    """Successful response from ``POST /generate``."""

    response: str
    explanation: str
    is_update: bool
    files: list[FileOut]
    new_files: list[str]
    validation: ValidationOut

    @classmethod
    def from_domain(cls, result: GenerationResult) -> GenerateResponse:
        return cls(
            response=result.response,
            explanation=result.explanation,
            is_update=result.is_update,
            files=[FileOut.from_domain(f) for f in result.files],
            new_files=[f.name for f in result.new_files],
            validation=ValidationOut.from_domain(result.validation),
        )


class ValidateResponse(BaseModel):
    """Response from ``POST /validate``."""

    validation: ValidationOut
    metadata: MetadataOut
    files: list[FileOut]


class ErrorResponse(BaseModel):
    """Standard error envelope returned on all failure paths."""

    status: str = "error"
    message: str
