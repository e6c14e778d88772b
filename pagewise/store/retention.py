"""Retention window — hides records older than a maximum age (drives LIMITED)."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from pagewise.pagination.bounds import coerce_value
from pagewise.pagination.types import BoundType, Query
from pagewise.store.base import AccessWindowPolicy, RecordStore, ScanRange


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RetentionWindow(AccessWindowPolicy):
    """Records whose *field* is at or before ``now - max_age`` are excluded.

    The window only narrows queries ordered by *field*; other orderings are
    served unrestricted. A scan heading into the excluded region reports
    LIMITED when the store still holds older matching records.
    """

    def __init__(
        self,
        store: RecordStore,
        max_age: timedelta,
        *,
        field: str = "created_at",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if store.sort_fields.get(field) is not BoundType.TIMESTAMP:
            raise ValueError(f"retention field {field!r} must be a timestamp sort field")
        self._store = store
        self.max_age = max_age
        self.field = field
        self._clock = clock

    def cutoff(self) -> datetime:
        return self._clock() - self.max_age

    def floor(self, query: Query) -> Any | None:
        if query.order != self.field:
            return None
        return self.cutoff()

    async def is_limited(self, query: Query, last: str | None, scan: ScanRange) -> bool:
        if query.order != self.field or not scan.descending:
            return False
        oldest = await self._store.scan(query, ScanRange(), 1)
        if not oldest:
            return False
        return coerce_value(BoundType.TIMESTAMP, oldest[0][self.field]) <= self.cutoff()
