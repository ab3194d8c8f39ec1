"""Error Handlers — map every failure to the fulfillment error envelope.

Invariants:
    - Domain rejections keep their code and details (current vs requested status,
      stock, orders needed) so the client can rebuild the typed error
    - Request body problems use the same envelope as ValidationError, keyed by
      the first offending field
    - Unexpected exceptions answer 500 with no internal detail

Design Decisions:
    - Expected rejections (4xx) log at WARNING, backend faults (5xx) at ERROR
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from fulfillment.core.errors import (
    ErrorCategory, ErrorContext, ErrorSeverity, FulfillmentError, ValidationError,
)

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FulfillmentError, _fulfillment_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(Exception, _unexpected_error)


async def _fulfillment_error(request: Request, exc: FulfillmentError) -> JSONResponse:
    log = logger.error if exc.http_status >= 500 else logger.warning
    log(
        f"{type(exc).__name__}: {exc.message}",
        extra={
            "error_code": exc.code, "path": request.url.path,
            "order_id": exc.context.order_id, "actor_role": exc.context.actor_role,
        },
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


def _loc(error: dict) -> str:
    return ".".join(str(part) for part in error["loc"])


async def _request_validation_error(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    errors = exc.errors()
    field = _loc(errors[0]) if errors else None
    logger.warning(
        f"Rejected request body on {request.url.path}: {field}",
        extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
    )
    rejection = ValidationError(
        "Invalid request data",
        field=field,
        details={
            "errors": [
                {"field": _loc(e), "message": e["msg"], "type": e["type"]}
                for e in errors
            ],
        },
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST, content=rejection.to_response(),
    )


async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled exception on {request.url.path}: {exc}",
        exc_info=True, extra={"path": request.url.path},
    )
    failure = FulfillmentError(
        "An unexpected error occurred", "INTERNAL_ERROR",
        ErrorCategory.INTERNAL, ErrorSeverity.CRITICAL, ErrorContext(), 500,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=failure.to_response(),
    )
