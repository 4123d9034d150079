"""Exception → HTTP response mapping.

Every error body carries ``error``, ``code`` and ``retryable`` so callers can
tell failures worth retrying (persistence trouble) from those that are not
(bad input, conflicts, gateway or carrier refusals).
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.integrations.fastapi import register_exception_handlers

from storefront.exceptions import (
    AuthenticationError,
    ConflictError,
    ExternalServiceError,
    PermissionDenied,
    PersistenceError,
    StorefrontError,
)

logger = structlog.get_logger(__name__)

_STATUS_CODES = (
    (AuthenticationError, 401),
    (PermissionDenied, 403),
    (ConflictError, 409),
    (ExternalServiceError, 502),
    (PersistenceError, 503),
)


def status_code_for(exc: StorefrontError) -> int:
    for exc_type, status_code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return status_code
    return 500


def _body(error, code: str, retryable: bool = False, details=None) -> dict:
    return {"error": error, "code": code, "retryable": retryable, "details": details or {}}


async def _storefront_error(request: Request, exc: StorefrontError) -> JSONResponse:
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error("Request failed", path=request.url.path, code=exc.code, error=exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content=_body(exc.messages, "validation_error"))


async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body") or "body"
        errors.setdefault(field, []).append(error.get("msg", "Invalid value"))
    return JSONResponse(status_code=400, content=_body(errors, "validation_error"))


async def _not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    messages = getattr(exc, "messages", None) or str(exc)
    return JSONResponse(status_code=404, content=_body(messages, "not_found"))


def register_error_handlers(app: FastAPI) -> None:
    """Install protean's handlers, then the storefront's on top of them."""
    register_exception_handlers(app)
    app.add_exception_handler(StorefrontError, _storefront_error)
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(ObjectNotFoundError, _not_found)
