"""Global exception handlers for consistent error responses.

Every failure leaves the API as the same envelope::

    {"error": "<human message>", "code": "<STABLE_CODE>", "details": ..., "requestId": "..."}

Design:
- AppError subclasses → the status they declare (400, 401, 403, 404, 409, 413, 422, 429)
- Request validation (pydantic) → 400 VALIDATION_ERROR with the error list
- Unexpected Exception → generic 500 (safety net, nothing leaked)
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from bugtracker.core.errors import AppError, RateLimitAppError
from bugtracker.core.logging import get_request_id

logger = logging.getLogger(__name__)

_HTTP_STATUS_CODES = {
    401: "AUTH_REQUIRED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    413: "FILE_TOO_LARGE",
}


def error_body(code: str, message: str, details: Any = None) -> dict[str, Any]:
    """Build the failure envelope shared by every handler."""
    body: dict[str, Any] = {"error": message, "code": code}
    if details is not None:
        body["details"] = jsonable_encoder(details)
    request_id = get_request_id()
    if request_id:
        body["requestId"] = request_id
    return body


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render domain errors with the status their class declares.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with the failure envelope.
    """
    status_code = exc.status_code
    log = logger.warning if status_code >= 429 else logger.info
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "status_code": status_code,
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    headers = exc.headers if isinstance(exc, RateLimitAppError) else None
    return JSONResponse(
        status_code=status_code,
        content=error_body(exc.code, exc.message, exc.details),
        headers=headers or None,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Map request schema violations to 400 VALIDATION_ERROR."""
    errors = exc.errors()
    logger.info(
        "request_validation_failed",
        extra={
            "request_path": request.url.path,
            "error_count": len(errors),
        },
    )
    details = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in errors
    ]
    return JSONResponse(
        status_code=400,
        content=error_body("VALIDATION_ERROR", "Validation error", details),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap framework-raised HTTP errors (unknown route, wrong method) in the envelope."""
    code = _HTTP_STATUS_CODES.get(exc.status_code, "HTTP_ERROR")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic message.
    Prevents information leakage (no stack traces to client).
    """
    logger.error(
        "unhandled_exception",
        exc_info=exc,
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content=error_body("INTERNAL_ERROR", "Internal server error"),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Example:
        >>> from fastapi import FastAPI
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(validation_error_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
