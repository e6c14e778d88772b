"""Deterministic records, store builders and transports shared by the tests."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

from pagewise.pagination.types import BoundType
from pagewise.pagination.wire import ListRequest, ListResponse
from pagewise.store.memory import MemoryRecordStore

BASE = datetime(2026, 1, 1, 9, 0, 0, tzinfo=timezone.utc)
TEAM_A = "team-a"
TEAM_B = "team-b"

SORT_FIELDS = {
    "created_at": BoundType.TIMESTAMP,
    "name": BoundType.STRING,
    "rank": BoundType.INTEGER,
}


def make_records(count: int, *, team: str = TEAM_A, start: int = 0) -> list[dict]:
    """``count`` records one hour apart, ranks and names in the same order."""
    return [
        {
            "id": f"{team}-{i:04d}",
            "team_id": team,
            "name": f"name-{i:04d}",
            "rank": i,
            "created_at": BASE + timedelta(hours=i),
            "updated_at": BASE + timedelta(hours=i),
        }
        for i in range(start, start + count)
    ]


def make_store(records=(), **kwargs) -> MemoryRecordStore:
    kwargs.setdefault("sort_fields", SORT_FIELDS)
    kwargs.setdefault("filter_fields", {"team_id"})
    return MemoryRecordStore(records, **kwargs)


class GatedTransport:
    """Transport whose responses are released explicitly by the test.

    Each ``fetch`` parks on its own gate; ``release(i)`` lets call *i*
    through to the wrapped transport, so tests control arrival order.
    """

    def __init__(self, inner) -> None:
        self._inner = inner
        self.requests: list[ListRequest] = []
        self._gates: list[asyncio.Event] = []

    async def fetch(self, request: ListRequest) -> ListResponse:
        gate = asyncio.Event()
        self.requests.append(request)
        self._gates.append(gate)
        await gate.wait()
        return await self._inner.fetch(request)

    def release(self, index: int) -> None:
        self._gates[index].set()

    async def wait_for_calls(self, count: int, timeout: float = 1.0) -> None:
        async def _poll() -> None:
            while len(self.requests) < count:
                await asyncio.sleep(0)

        await asyncio.wait_for(_poll(), timeout=timeout)


class RecordingTransport:
    """Pass-through transport that keeps every request it forwards."""

    def __init__(self, inner) -> None:
        self._inner = inner
        self.requests: list[ListRequest] = []

    async def fetch(self, request: ListRequest) -> ListResponse:
        self.requests.append(request)
        return await self._inner.fetch(request)
