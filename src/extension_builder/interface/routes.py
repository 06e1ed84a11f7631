"""API routes — thin controllers that delegate to the use case and services."""

from __future__ import annotations

import json
import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse, Response, StreamingResponse

from extension_builder.domain.entities import GenerationEvent
from extension_builder.domain.exceptions import ExtensionBuilderError, PreviewUnavailableError
from extension_builder.interface.dependencies import get_use_case
from extension_builder.interface.schemas import (
    FileOut,
    FilesRequest,
    GenerateRequest,
    GenerateResponse,
    MetadataOut,
    PreviewRequest,
    ValidateResponse,
    ValidationOut,
)
from extension_builder.services.extension_validator import extract_metadata, validate_extension
from extension_builder.services.file_ordering import order_files
from extension_builder.services.generate_extension import GenerateExtensionUseCase
from extension_builder.services.packager import archive_filename, build_archive
from extension_builder.services.preview_renderer import render_preview

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/generate",
    response_model=GenerateResponse,
    responses={
        422: {"description": "Invalid request or no files could be extracted"},
        502: {"description": "LLM provider error"},
    },
)
async def generate(
    body: GenerateRequest,
    use_case: GenerateExtensionUseCase = Depends(get_use_case),
) -> GenerateResponse:
    """Generate (or refine) an extension from a natural-language prompt."""
    result = await use_case.execute(
        body.prompt,
        existing_files=body.existing(),
        history=body.turns(),
        mode=body.mode,
    )
    return GenerateResponse.from_domain(result)


def _event_line(event: GenerationEvent) -> str:
    payload: dict[str, object] = {"type": event.kind}
    if event.kind == "chunk":
        payload["text"] = event.text
    elif event.kind == "file" and event.file is not None:
        payload["file"] = FileOut.from_domain(event.file).model_dump()
    elif event.kind == "result" and event.result is not None:
        payload["result"] = GenerateResponse.from_domain(event.result).model_dump(mode="json")
    return json.dumps(payload, ensure_ascii=False) + "\n"


@router.post("/generate/stream")
async def generate_stream(
    body: GenerateRequest,
    use_case: GenerateExtensionUseCase = Depends(get_use_case),
) -> StreamingResponse:
    """Like ``/generate`` but streams NDJSON events as the model responds."""

    async def _events() -> AsyncIterator[str]:
        try:
            async for event in use_case.stream(
                body.prompt,
                existing_files=body.existing(),
                history=body.turns(),
                mode=body.mode,
            ):
                yield _event_line(event)
        except ExtensionBuilderError as exc:
            # Headers are already sent; report the failure in-band.
            logger.warning("%s: %s", type(exc).__name__, exc)
            yield json.dumps({"type": "error", "message": str(exc)}) + "\n"

    return StreamingResponse(_events(), media_type="application/x-ndjson")


@router.post("/validate", response_model=ValidateResponse)
async def validate(body: FilesRequest) -> ValidateResponse:
    """Validate a file set and return it in display order."""
    files = body.to_domain()
    return ValidateResponse(
        validation=ValidationOut.from_domain(validate_extension(files)),
        metadata=MetadataOut.from_domain(extract_metadata(files)),
        files=[FileOut.from_domain(f) for f in order_files(files)],
    )


@router.post(
    "/preview",
    response_class=HTMLResponse,
    responses={422: {"description": "No HTML entry file to preview"}},
)
async def preview(body: PreviewRequest) -> HTMLResponse:
    """Render a self-contained preview page for an iframe."""
    html = render_preview(body.to_domain(), body.platform)
    if html is None:
        raise PreviewUnavailableError("No HTML file found to preview.")
    return HTMLResponse(html)


@router.post(
    "/download",
    response_class=Response,
    responses={422: {"description": "Empty file set"}},
)
async def download(body: FilesRequest) -> Response:
    """Package the file set as a zip archive."""
    files = order_files(body.to_domain())
    archive = build_archive(files)
    filename = archive_filename(extract_metadata(files).name)
    return Response(
        content=archive,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
