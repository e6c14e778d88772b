"""Transports that carry a ListRequest to a PageFetcher and bring back a ListResponse."""

from __future__ import annotations

from typing import Protocol

import httpx
import structlog

from pagewise.errors import InvalidQuery, PaginationError, StoreUnavailable, error_for_code
from pagewise.pagination.fetcher import PageFetcher
from pagewise.pagination.wire import ListRequest, ListResponse

log = structlog.get_logger(__name__)


class Transport(Protocol):
    async def fetch(self, request: ListRequest) -> ListResponse: ...


class LocalTransport:
    """In-process transport: calls a PageFetcher and returns wire-shaped data."""

    def __init__(self, fetcher: PageFetcher) -> None:
        self._fetcher = fetcher

    async def fetch(self, request: ListRequest) -> ListResponse:
        bound, direction = request.bound()
        result = await self._fetcher.fetch(request.query(), bound, direction, request.limit)
        return ListResponse.from_result(result).as_wire()


class HttpTransport:
    """Thin async client for a list endpoint speaking the wire contract.

    Never retries: retry / backoff belongs to the caller's policy. Timeouts
    and connection failures surface as :class:`StoreUnavailable`.
    """

    def __init__(
        self,
        base_url: str = "",
        path: str = "/api/v1/entries",
        *,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._path = path
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
        )

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── public ─────────────────────────────────────────────────────────────

    async def fetch(self, request: ListRequest) -> ListResponse:
        try:
            resp = await self._client.get(self._path, params=request.to_params())
        except httpx.TimeoutException as exc:
            log.warning("transport.timeout", path=self._path)
            raise StoreUnavailable(f"request timed out: {exc}") from exc
        except httpx.TransportError as exc:
            log.warning("transport.error", path=self._path, error=str(exc))
            raise StoreUnavailable(f"transport error: {exc}") from exc

        if resp.status_code >= 400:
            raise self._error_from(resp)
        return ListResponse.model_validate(resp.json())

    # ── internal ───────────────────────────────────────────────────────────

    @staticmethod
    def _error_from(resp: httpx.Response) -> PaginationError:
        code: str | None = None
        detail = resp.text
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            code = body.get("code")
            detail = str(body.get("detail", detail))
        if code:
            return error_for_code(code, detail)
        if resp.status_code >= 500:
            return StoreUnavailable(f"HTTP {resp.status_code}: {detail}")
        return InvalidQuery(f"HTTP {resp.status_code}: {detail}")
