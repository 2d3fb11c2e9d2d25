"""Error Handlers — maps Vetcepi failures onto HTTP responses.

Invariants:
    - Cipher failures answer with a fixed message; the failure reason stays in
      the server log and never reaches the client
    - DuplicateBarcodeError answers 409 with the existing medicine id so the
      client can open that record instead of retrying the create
    - Other VetcepiErrors use to_response(); log level follows recoverable
    - Request validation errors list fields and messages, never input values
      (a rejected body may carry medical history text)
    - Anything unhandled becomes a bare 500

Design Decisions:
    - Handlers are registered most-specific first; Starlette resolves by MRO,
      so registration order is for reading only
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from vetcepi.core.errors import (
    DecryptionFailure, DuplicateBarcodeError, EncryptionFailure, ErrorCategory,
    ErrorSeverity, VetcepiError,
)

logger = logging.getLogger(__name__)

CIPHER_USER_MESSAGE = "Medical record could not be processed"


def _error_body(
    code: str, message: str, category: ErrorCategory, severity: ErrorSeverity,
    **extra,
) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "category": category.value,
            "severity": severity.value,
            **extra,
        },
    }


def _log_extra(request: Request, exc: VetcepiError) -> dict:
    return {
        "error_code": exc.code,
        "path": request.url.path,
        "table": exc.context.table,
        "record_id": exc.context.record_id,
        "barcode": exc.context.barcode,
    }


async def handle_cipher_error(request: Request, exc: VetcepiError) -> JSONResponse:
    logger.error(f"Cipher failure: {exc.reason}", extra=_log_extra(request, exc))
    return JSONResponse(
        status_code=exc.http_status,
        content=_error_body(
            exc.code, CIPHER_USER_MESSAGE, exc.category, exc.severity,
        ),
    )


async def handle_duplicate_barcode(
    request: Request, exc: DuplicateBarcodeError,
) -> JSONResponse:
    logger.info("Duplicate barcode rejected", extra=_log_extra(request, exc))
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=_error_body(
            exc.code, exc.message, exc.category, exc.severity,
            barcode=exc.barcode,
            existing_id=exc.existing_id,
        ),
    )


async def handle_vetcepi_error(request: Request, exc: VetcepiError) -> JSONResponse:
    log = logger.warning if exc.recoverable else logger.error
    log(f"{type(exc).__name__}: {exc.message}", extra=_log_extra(request, exc))
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


async def handle_request_validation(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    fields = [
        {
            "field": ".".join(str(loc) for loc in e["loc"]),
            "message": e["msg"],
            "type": e["type"],
        }
        for e in exc.errors()
    ]
    logger.warning(
        f"Rejected request body: {', '.join(f['field'] for f in fields)}",
        extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(
            "VALIDATION_ERROR", "Invalid request data",
            ErrorCategory.VALIDATION, ErrorSeverity.WARNING,
            details=fields,
        ),
    )


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled {type(exc).__name__} on {request.url.path}",
        exc_info=True,
        extra={"error_code": "INTERNAL_ERROR", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(
            "INTERNAL_ERROR", "An unexpected error occurred",
            ErrorCategory.INTERNAL, ErrorSeverity.CRITICAL,
        ),
    )


_HANDLERS = (
    (EncryptionFailure, handle_cipher_error),
    (DecryptionFailure, handle_cipher_error),
    (DuplicateBarcodeError, handle_duplicate_barcode),
    (VetcepiError, handle_vetcepi_error),
    (RequestValidationError, handle_request_validation),
    (Exception, handle_unexpected),
)


def register_error_handlers(app: FastAPI) -> None:
    """Install the Vetcepi exception handlers on app."""
    for exc_class, handler in _HANDLERS:
        app.add_exception_handler(exc_class, handler)
