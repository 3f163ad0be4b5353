"""Exception handlers producing the ``{"type", "message"}`` error body.

Every failure leaves the API in the same shape. Exceptions marked
``expose = False`` (payment and storage failures) are logged in full with
their reconciliation context but reach the client only as a generic
``internal_error``.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import AppException, InternalError, ReconcilableError

logger = logging.getLogger("app.exception")

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"


def _error_response(status_code: int, error_type: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"type": error_type, "message": message}
    )


def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Log an AppException and render it, masking non-exposed errors."""
    extra = {
        "method": request.method,
        "path": request.url.path,
        "status_code": exc.status_code,
        "error_type": exc.error_type,
    }
    if isinstance(exc, ReconcilableError):
        extra.update(exc.log_context())

    log = logger.error if exc.status_code >= 500 else logger.info
    log("AppException: %s - %s", exc.error_type, exc.message, extra=extra)

    if exc.expose:
        return _error_response(exc.status_code, exc.error_type, exc.message)
    generic = InternalError()
    return _error_response(generic.status_code, generic.error_type, generic.message)


def http_exception_handler(
    _request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Unknown routes and disallowed methods."""
    return _error_response(exc.status_code, "http_error", str(exc.detail))


def validation_exception_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Request bodies and query parameters FastAPI could not parse (422)."""
    messages = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"] if loc not in ("body", "query"))
        messages.append(f"{field}: {error['msg']}" if field else error["msg"])
    return _error_response(422, "validation_error", "; ".join(messages))


def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception: %s %s - %s",
        request.method,
        request.url.path,
        exc,
        extra={"method": request.method, "path": request.url.path, "status_code": 500},
        exc_info=True,
    )
    return _error_response(500, "internal_error", UNEXPECTED_ERROR_MESSAGE)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
