"""Global exception handlers for consistent error responses.

Every failure leaves the service as the same envelope,
``{"success": false, "error": {message, category, timestamp, ...}}``, with
the HTTP status taken from the category table in ``core.errors``.

Design:
- AppError subclasses -> status by category, logged once here
- Starlette HTTPException (404/405 from routing) -> same envelope
- Unexpected Exception -> generic 500 SYSTEM_ERROR (safety net)
- Upstream error text and stack traces only reach the client in
  development mode
- Headers collected by the request pipeline (CORS, hardening, rate limit)
  are attached to every error response
"""

from __future__ import annotations

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from portfolio_api.core.config import settings
from portfolio_api.core.errors import (
    CLIENT_SAFE_CATEGORIES,
    USER_MESSAGE_BY_CATEGORY,
    AppError,
    ErrorCategory,
    RateLimitAppError,
)
from portfolio_api.core.headers import response_headers_for
from portfolio_api.core.logging import get_request_id
from portfolio_api.schemas.envelope import (
    ErrorBody,
    ErrorEnvelope,
    FieldErrorBody,
    TechnicalDetails,
)

logger = logging.getLogger(__name__)


def _technical(exc: Exception, code: str | None = None, details: dict | None = None) -> TechnicalDetails | None:
    if not settings.app.development_mode:
        return None
    return TechnicalDetails(
        code=code,
        original_message=str(exc),
        error_type=type(exc).__name__,
        details=details,
        stack="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    )


def build_error_response(
    request: Request,
    *,
    status_code: int,
    body: ErrorBody,
    extra_headers: dict[str, str] | None = None,
) -> JSONResponse:
    headers = response_headers_for(request)
    if extra_headers:
        headers.update(extra_headers)
    return JSONResponse(
        status_code=status_code,
        content=ErrorEnvelope(error=body).to_wire(),
        headers=headers,
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render a domain error.

    Client-caused categories (validation, origin, rate limit) show their own
    message; upstream and system categories show a generic message and keep
    the detail in the log only.
    """

    category = exc.category
    status_code = exc.status_code
    details = dict(exc.details or {})

    log = logger.warning if status_code < 500 else logger.error
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_category": category.value,
            "error_detail": exc.message,
            "status_code": status_code,
            "retryable": exc.retryable,
            "details": details or None,
            "cause": repr(exc.__cause__) if exc.__cause__ else None,
            "request_path": request.url.path,
        },
    )

    message = exc.message if category in CLIENT_SAFE_CATEGORIES else USER_MESSAGE_BY_CATEGORY[category]
    body = ErrorBody(
        message=message,
        category=category.value,
        request_id=get_request_id(),
        technical=_technical(exc, code=exc.code, details=details or None),
    )

    extra_headers: dict[str, str] = {}
    if category is ErrorCategory.VALIDATION_ERROR and details.get("fields"):
        body.fields = [FieldErrorBody(**f) for f in details["fields"]]
    if isinstance(exc, RateLimitAppError):
        body.retry_after_seconds = exc.retry_after_seconds
        extra_headers["Retry-After"] = str(exc.retry_after_seconds)

    return build_error_response(request, status_code=status_code, body=body, extra_headers=extra_headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap routing errors (unknown path, wrong method) in the error envelope."""

    logger.warning(
        "http_error_handled",
        extra={
            "status_code": exc.status_code,
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )
    category = ErrorCategory.VALIDATION_ERROR if exc.status_code < 500 else ErrorCategory.SYSTEM_ERROR
    body = ErrorBody(
        message=str(exc.detail),
        category=category.value,
        request_id=get_request_id(),
    )
    return build_error_response(
        request,
        status_code=exc.status_code,
        body=body,
        extra_headers=dict(exc.headers or {}),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs the full exception while returning a generic message, so internal
    details never leak outside development mode.
    """

    logger.error(
        "unhandled_exception",
        exc_info=(type(exc), exc, exc.__traceback__),
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    body = ErrorBody(
        message=USER_MESSAGE_BY_CATEGORY[ErrorCategory.SYSTEM_ERROR],
        category=ErrorCategory.SYSTEM_ERROR.value,
        request_id=get_request_id(),
        technical=_technical(exc),
    )
    return build_error_response(request, status_code=500, body=body)


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Specific handlers are registered before the general fallback.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
