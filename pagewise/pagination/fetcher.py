"""PageFetcher — bounded page + pagination state over an ordered record store."""

from __future__ import annotations

import structlog

from pagewise.core.config import Settings
from pagewise.errors import InvalidQuery
from pagewise.pagination.bounds import coerce_value, format_bound, parse_bound
from pagewise.pagination.types import BoundType, Direction, FetchResult, PaginationState, Query
from pagewise.store.base import AccessWindowPolicy, RecordStore, ScanRange

logger = structlog.get_logger(__name__)

PAGE_LIMIT_MAX = 100
PAGE_LIMIT_DEFAULT = 20


class PageFetcher:
    """Stateless page reader; safe to share across concurrent requests."""

    def __init__(
        self,
        store: RecordStore,
        *,
        default_limit: int | None = PAGE_LIMIT_DEFAULT,
        max_limit: int = PAGE_LIMIT_MAX,
        policy: AccessWindowPolicy | None = None,
    ) -> None:
        if max_limit < 1:
            raise ValueError("max_limit must be >= 1")
        if default_limit is not None and not 1 <= default_limit <= max_limit:
            raise ValueError("default_limit must be between 1 and max_limit")
        self._store = store
        self._policy = policy
        self.default_limit = default_limit
        self.max_limit = max_limit

    @classmethod
    def from_settings(
        cls,
        store: RecordStore,
        settings: Settings,
        policy: AccessWindowPolicy | None = None,
    ) -> PageFetcher:
        return cls(
            store,
            default_limit=settings.default_limit,
            max_limit=settings.max_limit,
            policy=policy,
        )

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def policy(self) -> AccessWindowPolicy | None:
        return self._policy

    def resolve_limit(self, limit: int) -> int:
        """Map ``0`` to the default limit and reject anything unbounded."""
        if limit < 0:
            raise InvalidQuery(f"limit must be >= 0, got {limit}")
        if limit == 0:
            if self.default_limit is None:
                raise InvalidQuery("limit=0 requires a configured default limit")
            return self.default_limit
        if limit > self.max_limit:
            raise InvalidQuery(f"limit {limit} exceeds maximum {self.max_limit}")
        return limit

    def _scan_range(
        self, query: Query, kind: BoundType, bound: str | None, direction: Direction
    ) -> ScanRange:
        parsed = parse_bound(kind, bound) if bound is not None else None
        # order_desc flips the comparison, not the stored order
        ascending = (direction is Direction.AFTER) != query.order_desc
        if ascending:
            scan = ScanRange(lower=parsed, descending=False)
        else:
            scan = ScanRange(upper=parsed, descending=True)

        if self._policy is not None:
            floor = self._policy.floor(query)
            if floor is not None:
                floor = coerce_value(kind, floor)
                if scan.lower is None or floor > scan.lower:
                    scan = ScanRange(lower=floor, upper=scan.upper, descending=scan.descending)
        return scan

    async def fetch(
        self,
        query: Query,
        bound: str | None = None,
        direction: Direction = Direction.AFTER,
        limit: int = 0,
    ) -> FetchResult:
        """Return one page of *query* strictly beyond *bound*.

        ``AFTER`` continues in query order. ``BEFORE`` walks backwards from
        *bound*; the page is still returned in query order and ``last`` is the
        record farthest from *bound*, so it can be passed back as ``before``.

        Raises ``InvalidQuery``, ``InvalidBound`` or ``StoreUnavailable``.
        """
        limit = self.resolve_limit(limit)
        kind = self._store.validate(query)
        scan = self._scan_range(query, kind, bound, direction)

        rows = await self._store.scan(query, scan, limit + 1)
        has_more = len(rows) > limit
        kept = rows[:limit]

        last = format_bound(kind, kept[-1][query.order]) if kept else bound
        if has_more:
            state = PaginationState.CONTINUE
        elif self._policy is not None and await self._policy.is_limited(query, last, scan):
            state = PaginationState.LIMITED
        else:
            state = PaginationState.END

        if direction is Direction.BEFORE:
            kept.reverse()

        logger.debug(
            "page.fetched",
            order=query.order,
            order_desc=query.order_desc,
            direction=direction.value,
            limit=limit,
            count=len(kept),
            state=state.value,
        )
        return FetchResult(records=kept, state=state, last=last)
