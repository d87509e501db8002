"""Error envelope for the tracegas API.

Every non-2xx response has the same body:

    {
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "Trace validation failed: 2 issue(s)",
            "details": [{"source": "call_trace", "field": "...", ...}],
            "request_id": "abc-123"
        }
    }

``details`` is always a list of ``ValidationIssue`` rows, whether the
problem was in the request body itself or in the traces it carried.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from tracegas.analyzer.validation import error_issues
from tracegas.core.errors import ErrorCode, IssueSource, TraceGasError, ValidationIssue

logger = logging.getLogger(__name__)


# ── Error Schemas ────────────────────────────────────────────────────────────


class ErrorEnvelope(BaseModel):
    code: ErrorCode
    message: str
    details: list[ValidationIssue] | None = None
    request_id: str | None = None


class ErrorResponse(BaseModel):
    error: ErrorEnvelope


# Statuses the router itself produces; the analysis route raises TraceGasError.
_ROUTING_CODES: dict[int, ErrorCode] = {
    404: ErrorCode.NOT_FOUND,
    405: ErrorCode.METHOD_NOT_ALLOWED,
}


def _envelope(
    request: Request,
    status_code: int,
    code: ErrorCode,
    message: str,
    details: list[ValidationIssue] | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorEnvelope(
            code=code,
            message=message,
            details=details,
            request_id=request.headers.get("X-Request-ID"),
        )
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


# ── Exception Handlers ──────────────────────────────────────────────────────


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed request body: report it in the same shape as trace issues."""
    issues = error_issues(IssueSource.REQUEST, exc.errors(), skip_loc=("body",))
    return _envelope(
        request,
        422,
        ErrorCode.VALIDATION_ERROR,
        f"Request validation failed: {len(issues)} issue(s)",
        issues,
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    code = _ROUTING_CODES.get(exc.status_code)
    if code is None:
        code = ErrorCode.INTERNAL_ERROR if exc.status_code >= 500 else ErrorCode.BAD_REQUEST
    return _envelope(request, exc.status_code, code, str(exc.detail or code.value))


async def tracegas_error_handler(request: Request, exc: TraceGasError) -> JSONResponse:
    return _envelope(request, exc.status_code, exc.code, exc.message, exc.issues or None)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the traceback; the client only sees a generic message."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _envelope(
        request,
        500,
        ErrorCode.INTERNAL_ERROR,
        "An internal server error occurred. Please try again later.",
    )


def register_error_handlers(app: Any) -> None:
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(TraceGasError, tracegas_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
