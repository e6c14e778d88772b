"""Unified error handling — PaginationError + RequestValidationError → JSON."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from pagewise.errors import (
    InvalidBound,
    InvalidQuery,
    PaginationError,
    StoreUnavailable,
)

_STATUS_MAP: dict[type[PaginationError], int] = {
    InvalidBound: 422,
    InvalidQuery: 422,
    StoreUnavailable: 503,
}


def status_for(exc: PaginationError) -> int:
    for cls in type(exc).__mro__:
        if cls in _STATUS_MAP:
            return _STATUS_MAP[cls]
    return 500


async def _pagination_error_handler(_request: Request, exc: PaginationError) -> JSONResponse:
    return JSONResponse(
        status_code=status_for(exc),
        content={"detail": str(exc), "code": exc.code},
    )


async def _validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    messages = []
    for err in exc.errors():
        loc = " → ".join(str(part) for part in err["loc"])
        messages.append(f"{loc}: {err['msg']}")
    return JSONResponse(
        status_code=422,
        content={"detail": "; ".join(messages), "code": InvalidQuery.code},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register exception handlers on the app."""
    app.add_exception_handler(PaginationError, _pagination_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
