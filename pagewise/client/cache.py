"""PaginatedListCache — incremental page loading into a local ordered cache.

Each Query owns one list entry driven by a small state machine::

    IDLE ──load──▶ LOADING_FIRST_PAGE ──▶ LOADED(state)
    LOADED(CONTINUE) ──load_more──▶ LOADING_MORE ──▶ LOADED(state)
    LOADED(CONTINUE) ──top_up──▶ TOPPING_UP ──▶ LOADED(state)
    any ──refresh──▶ LOADING_FIRST_PAGE

Rules:

* at most one current in-flight fetch per query; concurrent callers attach
  to the pending task instead of issuing a duplicate request;
* every fetch is tagged with the entry's generation and its response is
  dropped if the generation moved on (refresh / cancel / evict);
* on failure the entry reverts to its last committed state, keeps its cached
  records, stores the error and raises it to every waiter.

All transitions run on one event loop; the transport call is the only await.
"""

from __future__ import annotations

import asyncio
import enum
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass, field
from itertools import takewhile
from typing import Any

import structlog

from pagewise.client.periods import PeriodOf
from pagewise.client.transport import Transport
from pagewise.errors import StoreUnavailable
from pagewise.pagination.types import PaginationState, Query, Record
from pagewise.pagination.wire import ListRequest, ListResponse

logger = structlog.get_logger(__name__)


class ListStatus(str, enum.Enum):
    IDLE = "idle"
    LOADING_FIRST_PAGE = "loading_first_page"
    LOADED = "loaded"
    LOADING_MORE = "loading_more"
    TOPPING_UP = "topping_up"


@dataclass(frozen=True)
class ListSnapshot:
    """Read-only view of one query's list entry."""

    query: Query
    records: tuple[Record, ...]
    status: ListStatus
    pagination: PaginationState | None
    boundary: str | None
    error: BaseException | None = None

    @property
    def is_loading(self) -> bool:
        return self.status not in (ListStatus.IDLE, ListStatus.LOADED)

    @property
    def has_more(self) -> bool:
        return self.pagination is PaginationState.CONTINUE

    @property
    def is_complete(self) -> bool:
        return self.pagination is not None and self.pagination.is_terminal


@dataclass
class _Committed:
    status: ListStatus
    ids: list[Hashable]
    pagination: PaginationState | None
    boundary: str | None


@dataclass
class _ListEntry:
    query: Query
    ids: list[Hashable] = field(default_factory=list)
    status: ListStatus = ListStatus.IDLE
    pagination: PaginationState | None = None
    boundary: str | None = None
    generation: int = 0
    error: BaseException | None = None
    task: asyncio.Task[ListSnapshot] | None = None
    committed: _Committed | None = None

    def checkpoint(self, status: ListStatus) -> None:
        self.committed = _Committed(status, list(self.ids), self.pagination, self.boundary)

    def rollback(self) -> None:
        if self.committed is None:
            return
        self.status = self.committed.status
        self.ids = list(self.committed.ids)
        self.pagination = self.committed.pagination
        self.boundary = self.committed.boundary


class PaginatedListCache:
    """Client-side cache of paginated lists keyed by :class:`Query`.

    Records from every query are kept once in a shared record-by-id map
    (``id_field``); list entries hold ordered ids only.
    """

    def __init__(self, transport: Transport, *, page_size: int = 20, id_field: str = "id") -> None:
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self._transport = transport
        self.page_size = page_size
        self.id_field = id_field
        self._entries: dict[Query, _ListEntry] = {}
        self._records: dict[Hashable, Record] = {}

    # ── read ──────────────────────────────────────────────────────────────

    def get(self, query: Query) -> ListSnapshot:
        """Current snapshot for *query* without any I/O."""
        entry = self._entries.get(query)
        if entry is None:
            return ListSnapshot(query, (), ListStatus.IDLE, None, None)
        return self._snapshot(entry)

    def record(self, record_id: Hashable) -> Record | None:
        return self._records.get(record_id)

    def __contains__(self, query: Query) -> bool:
        return query in self._entries

    # ── operations ────────────────────────────────────────────────────────

    async def load(self, query: Query, *, period_of: PeriodOf | None = None) -> ListSnapshot:
        """Load the first page of *query* unless it is cached or in flight.

        With *period_of*, keep loading until the leading period is complete.
        """
        entry = self._entry(query)
        if entry.task is not None:
            return await self._join(entry)
        if entry.status is ListStatus.LOADED:
            return self._snapshot(entry)
        return await self._begin_first_page(entry, period_of=period_of)

    async def load_more(self, query: Query) -> ListSnapshot:
        """Append the next page; a no-op once the tail is END or LIMITED."""
        entry = self._entry(query)
        if entry.task is not None:
            return await self._join(entry)
        if entry.status is ListStatus.IDLE:
            return await self._begin_first_page(entry)
        if entry.pagination is not PaginationState.CONTINUE:
            logger.debug("list.load_more_noop", order=query.order, state=_state(entry))
            return self._snapshot(entry)

        boundary = entry.boundary

        async def work(generation: int) -> None:
            response = await self._fetch(query, boundary)
            if self._is_stale(entry, generation):
                return
            self._apply(entry, response.records, response.pagination.state,
                        response.pagination.last, replace=False)

        return await self._launch(entry, ListStatus.LOADING_MORE, work)

    async def refresh(
        self,
        query: Query,
        *,
        clear_on_refresh: bool = False,
        period_of: PeriodOf | None = None,
    ) -> ListSnapshot:
        """Reload from the first page, superseding any in-flight fetch.

        Cached records stay visible until the new first page arrives unless
        *clear_on_refresh* is set.
        """
        entry = self._entry(query)
        if entry.task is not None:
            logger.debug("list.refresh_supersedes", order=query.order, generation=entry.generation)
        return await self._begin_first_page(entry, period_of=period_of, clear=clear_on_refresh)

    async def top_up(self, query: Query, period_of: PeriodOf) -> ListSnapshot:
        """Keep loading until the leading record's period is fully loaded."""
        entry = self._entry(query)
        if entry.task is not None:
            return await self._join(entry)
        if entry.status is ListStatus.IDLE:
            return await self._begin_first_page(entry, period_of=period_of)
        if entry.pagination is not PaginationState.CONTINUE or not entry.ids:
            return self._snapshot(entry)

        async def work(generation: int) -> None:
            await self._top_up_pages(entry, generation, period_of, page=None)

        return await self._launch(entry, ListStatus.TOPPING_UP, work)

    def cancel(self, query: Query) -> ListSnapshot:
        """Abandon the in-flight fetch; its response will be discarded."""
        entry = self._entries.get(query)
        if entry is None or entry.task is None:
            return self.get(query)
        entry.generation += 1
        entry.rollback()
        entry.task = None
        entry.committed = None
        logger.debug("list.cancelled", order=query.order, generation=entry.generation)
        return self._snapshot(entry)

    def evict(self, query: Query) -> bool:
        """Drop *query*'s entry and any records no other entry references."""
        entry = self._entries.pop(query, None)
        if entry is None:
            return False
        entry.generation += 1
        entry.task = None
        candidates = _held_ids(entry)
        entry.ids = []
        entry.committed = None
        entry.status = ListStatus.IDLE
        dropped = self._collect(candidates)
        logger.debug("list.evicted", order=query.order, dropped=dropped)
        return True

    # ── internal: lifecycle ───────────────────────────────────────────────

    def _entry(self, query: Query) -> _ListEntry:
        entry = self._entries.get(query)
        if entry is None:
            entry = self._entries[query] = _ListEntry(query)
        return entry

    async def _begin_first_page(
        self,
        entry: _ListEntry,
        *,
        period_of: PeriodOf | None = None,
        clear: bool = False,
    ) -> ListSnapshot:
        query = entry.query

        async def work(generation: int) -> None:
            response = await self._fetch(query, None)
            if self._is_stale(entry, generation):
                return
            self._apply(entry, response.records, response.pagination.state,
                        response.pagination.last, replace=True)
            if period_of is not None:
                entry.status = ListStatus.TOPPING_UP
                await self._top_up_pages(entry, generation, period_of, page=response.records)

        return await self._launch(entry, ListStatus.LOADING_FIRST_PAGE, work, clear=clear)

    async def _launch(
        self,
        entry: _ListEntry,
        status: ListStatus,
        work: Callable[[int], Awaitable[None]],
        *,
        clear: bool = False,
    ) -> ListSnapshot:
        if entry.task is None:
            entry.checkpoint(entry.status)
        entry.generation += 1
        entry.status = status
        entry.error = None
        if clear:
            entry.ids = []
        entry.task = asyncio.create_task(self._drive(entry, entry.generation, work))
        return await self._join(entry)

    async def _join(self, entry: _ListEntry) -> ListSnapshot:
        assert entry.task is not None
        return await asyncio.shield(entry.task)

    async def _drive(
        self,
        entry: _ListEntry,
        generation: int,
        work: Callable[[int], Awaitable[None]],
    ) -> ListSnapshot:
        try:
            await work(generation)
        except Exception as exc:
            if self._is_stale(entry, generation):
                logger.debug("list.stale_error_discarded", order=entry.query.order, error=str(exc))
            else:
                error: Exception = exc
                if isinstance(exc, asyncio.TimeoutError):
                    error = StoreUnavailable(f"fetch timed out: {exc}")
                self._fail(entry, error)
                if error is not exc:
                    raise error from exc
                raise

        if self._is_stale(entry, generation):
            if entry.task is not None:
                return await asyncio.shield(entry.task)
            return self._snapshot(entry)

        entry.status = ListStatus.LOADED
        entry.task = None
        entry.committed = None
        return self._snapshot(entry)

    def _fail(self, entry: _ListEntry, error: Exception) -> None:
        entry.rollback()
        entry.error = error
        entry.task = None
        entry.committed = None
        logger.warning(
            "list.fetch_failed",
            order=entry.query.order,
            status=entry.status.value,
            error=str(error),
            error_type=type(error).__name__,
        )

    @staticmethod
    def _is_stale(entry: _ListEntry, generation: int) -> bool:
        if entry.generation != generation:
            logger.debug(
                "list.stale_response_discarded",
                order=entry.query.order,
                generation=generation,
                current=entry.generation,
            )
            return True
        return False

    # ── internal: data ────────────────────────────────────────────────────

    async def _fetch(self, query: Query, after: str | None) -> ListResponse:
        request = ListRequest.for_query(query, limit=self.page_size, after=after)
        return await self._transport.fetch(request)

    def _apply(
        self,
        entry: _ListEntry,
        records: list[Record],
        state: PaginationState,
        last: str | None,
        *,
        replace: bool,
    ) -> None:
        previous = _held_ids(entry) if replace else set()
        ids = [self._remember(record) for record in records]
        entry.ids = ids if replace else entry.ids + ids
        entry.pagination = state
        entry.boundary = last
        entry.error = None
        entry.checkpoint(ListStatus.LOADED)
        if previous:
            self._collect(previous)
        logger.debug(
            "list.page_applied",
            order=entry.query.order,
            received=len(ids),
            total=len(entry.ids),
            state=state.value,
        )

    def _remember(self, record: Record) -> Hashable:
        rid = record[self.id_field]
        self._records[rid] = record
        return rid

    def _collect(self, candidates: set[Hashable]) -> int:
        """Drop *candidates* no list entry or checkpoint still holds."""
        referenced: set[Hashable] = set()
        for other in self._entries.values():
            referenced |= _held_ids(other)
        unused = candidates - referenced
        for rid in unused:
            self._records.pop(rid, None)
        return len(unused)

    def _sort_value(self, entry: _ListEntry, rid: Hashable) -> Any:
        return self._records[rid][entry.query.order]

    async def _top_up_pages(
        self,
        entry: _ListEntry,
        generation: int,
        period_of: PeriodOf,
        page: list[Record] | None,
    ) -> None:
        """Fetch pages until the anchor period (leading record's) is complete.

        *page* is the page just received; ``None`` skips the full-page check
        for the first round (topping up an already loaded list).
        """
        if not entry.ids:
            return
        anchor = period_of(self._sort_value(entry, entry.ids[0]))
        order = entry.query.order
        rounds = 0

        def wants_more(received: list[Record] | None) -> bool:
            if entry.pagination is not PaginationState.CONTINUE:
                return False
            if received is not None and len(received) < self.page_size:
                return False
            return period_of(self._sort_value(entry, entry.ids[-1])) == anchor

        while wants_more(page):
            response = await self._fetch(entry.query, entry.boundary)
            if self._is_stale(entry, generation):
                return
            rounds += 1
            records = response.records
            in_period = list(takewhile(lambda r: period_of(r[order]) == anchor, records))
            if len(in_period) < len(records):
                last = str(in_period[-1][order]) if in_period else entry.boundary
                self._apply(entry, in_period, PaginationState.CONTINUE, last, replace=False)
                break
            self._apply(entry, records, response.pagination.state,
                        response.pagination.last, replace=False)
            page = records

        logger.debug(
            "list.top_up_settled",
            order=order,
            anchor=str(anchor),
            rounds=rounds,
            total=len(entry.ids),
            state=_state(entry),
        )

    def _snapshot(self, entry: _ListEntry) -> ListSnapshot:
        return ListSnapshot(
            query=entry.query,
            records=tuple(self._records[rid] for rid in entry.ids),
            status=entry.status,
            pagination=entry.pagination,
            boundary=entry.boundary,
            error=entry.error,
        )


def _held_ids(entry: _ListEntry) -> set[Hashable]:
    held = set(entry.ids)
    if entry.committed is not None:
        held.update(entry.committed.ids)
    return held


def _state(entry: _ListEntry) -> str | None:
    return entry.pagination.value if entry.pagination is not None else None
