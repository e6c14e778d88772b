"""Request ID middleware — binds request_id (and list params) into structlog context."""

from __future__ import annotations

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

log = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _is_valid_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError):
        return False


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Reuse a valid incoming X-Request-ID or mint one; echo it on the response.

    Pagination params (``order``, ``limit``) are bound as well so every log
    line of a list request carries the page being served.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        raw_id = request.headers.get(REQUEST_ID_HEADER, "")
        request_id = raw_id if _is_valid_uuid(raw_id) else str(uuid.uuid4())

        context = {"request_id": request_id, "method": request.method, "path": request.url.path}
        for param in ("order", "limit"):
            if param in request.query_params:
                context[param] = request.query_params[param]
        tokens = structlog.contextvars.bind_contextvars(**context)

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            log.exception("request.failed", duration_ms=_elapsed_ms(start))
            raise
        else:
            log.info(
                "request.completed",
                status_code=response.status_code,
                duration_ms=_elapsed_ms(start),
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            structlog.contextvars.reset_contextvars(**tokens)


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 1)
