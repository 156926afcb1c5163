"""
Error envelope for the HTTP API.

Every failure leaves the API as ``{"detail", "code", "timestamp"}`` so
clients can branch on ``code`` and show ``detail`` verbatim. Workflow
failures are not errors at this layer: they are recorded on the workflow
and returned in the snapshot with a 200.
"""

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.core.exceptions import ScribeError

logger = logging.getLogger(__name__)


def _envelope(
    status_code: int, detail: str, code: str, timestamp: str | None = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": detail,
            "code": code,
            "timestamp": timestamp or datetime.now(UTC).isoformat(),
        },
    )


def describe_validation_errors(errors: Sequence[dict[str, Any]]) -> str:
    """Flatten pydantic error dicts into ``"body.email: Field required; ..."``."""
    parts = []
    for error in errors:
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "Invalid request"


async def _on_scribe_error(request: Request, exc: ScribeError) -> JSONResponse:
    level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logger.log(
        level, "%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.code
    )
    return _envelope(exc.status_code, exc.detail, exc.code, exc.timestamp)


async def _on_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    detail = describe_validation_errors(exc.errors())
    logger.info("Rejected %s %s: %s", request.method, request.url.path, detail)
    return _envelope(422, detail, "VALIDATION_ERROR")


async def _on_unhandled(request: Request, exc: Exception) -> JSONResponse:
    # Stack traces go to the log only
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return _envelope(500, "Internal server error", "INTERNAL_ERROR")


def register_error_handlers(app: FastAPI) -> None:
    """Install the envelope handlers on ``app``.

    ``ScribeError`` keeps its own status and code, request validation maps to
    422 ``VALIDATION_ERROR``, and anything else becomes 500 ``INTERNAL_ERROR``.
    """
    app.add_exception_handler(ScribeError, _on_scribe_error)
    app.add_exception_handler(RequestValidationError, _on_validation_error)
    app.add_exception_handler(Exception, _on_unhandled)
