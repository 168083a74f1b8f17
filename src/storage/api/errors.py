"""Map storage errors onto HTTP responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ValidationError

from storage.exceptions import (
    ConflictError,
    MalformedInputError,
    NotFoundError,
    PreconditionFailedError,
    ProtocolError,
    StorageError,
    UnsupportedOperationError,
)

logger = structlog.get_logger(__name__)

# Most specific first; the first isinstance match wins.
STATUS_CODES: list[tuple[type[StorageError], int]] = [
    (NotFoundError, 404),
    (ConflictError, 409),
    (PreconditionFailedError, 412),
    (MalformedInputError, 400),
    (ProtocolError, 502),
    (UnsupportedOperationError, 501),
]


def status_for(exc: StorageError) -> int:
    for kind, status in STATUS_CODES:
        if isinstance(exc, kind):
            return status
    return 500


async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.warning("request_failed", path=request.url.path, error=exc.kind, detail=str(exc))
    return JSONResponse(status_code=status, content={"error": exc.kind, "detail": str(exc)})


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": MalformedInputError.kind, "detail": str(exc)},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StorageError, storage_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
