"""Global exception handlers — translate domain errors to HTTP responses.

Every domain exception is answered with the standard
``{"status": "error", "message": "..."}`` envelope.  The status code is
looked up along the exception's MRO, so subclasses inherit their parent's
mapping.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from extension_builder.domain.exceptions import (
    EmptyFileSetError,
    ExtensionBuilderError,
    InvalidFileNameError,
    KnowledgeBaseError,
    LlmError,
    NoFilesGeneratedError,
    PreviewUnavailableError,
)

logger = logging.getLogger(__name__)

_EXCEPTION_STATUS: dict[type[ExtensionBuilderError], int] = {
    InvalidFileNameError: 422,
    EmptyFileSetError: 422,
    NoFilesGeneratedError: 422,
    PreviewUnavailableError: 422,
    LlmError: 502,
    KnowledgeBaseError: 500,
}


def status_for(exc: ExtensionBuilderError) -> int:
    """HTTP status for *exc*; unmapped domain errors are a 500."""
    for cls in type(exc).__mro__:
        if cls in _EXCEPTION_STATUS:
            return _EXCEPTION_STATUS[cls]
    return 500


def _error_json(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "message": message},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Attach exception handlers to the FastAPI application."""

    # ── Domain exceptions ───────────────────────────────────────────────

    @app.exception_handler(ExtensionBuilderError)
    async def domain_handler(request: Request, exc: ExtensionBuilderError) -> JSONResponse:
        status_code = status_for(exc)
        if status_code >= 500:
            logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc)
        else:
            logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc)
        return _error_json(status_code, str(exc))

    # ── Pydantic / FastAPI validation errors ────────────────────────────

    @app.exception_handler(RequestValidationError)
    async def validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        messages = []
        for err in exc.errors():
            loc = " → ".join(str(p) for p in err.get("loc", []))
            messages.append(f"{loc}: {err.get('msg', 'validation error')}")
        return _error_json(422, "; ".join(messages))

    # ── Catch-all for unexpected errors ─────────────────────────────────

    @app.exception_handler(Exception)
    async def generic_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception")
        return _error_json(500, "An unexpected error occurred. Please try again later.")
