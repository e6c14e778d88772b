"""Ordered record store + access-window policy interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from pagewise.errors import InvalidQuery
from pagewise.pagination.types import BoundType, Query, Record


@dataclass(frozen=True)
class ScanRange:
    """Exclusive value range for one scan, already parsed to the field's type.

    ``descending`` walks from ``upper`` down towards ``lower``.
    """

    lower: Any = None
    upper: Any = None
    descending: bool = False


class RecordStore(ABC):
    """Ordered record store: range scans by a declared sort field.

    Implementations must answer a scan in O(log n + limit) on an indexed field
    and never reorder records between calls.
    """

    def __init__(
        self,
        sort_fields: Mapping[str, BoundType],
        filter_fields: Iterable[str] = (),
        *,
        version_field: str | None = None,
    ) -> None:
        if not sort_fields:
            raise ValueError("a record store needs at least one sort field")
        self.sort_fields: dict[str, BoundType] = dict(sort_fields)
        self.filter_fields: frozenset[str] = frozenset(filter_fields)
        self.version_field = version_field

    def field_type(self, field: str) -> BoundType:
        """Return the declared type of sort *field*; raise InvalidQuery if unknown."""
        try:
            return self.sort_fields[field]
        except KeyError:
            raise InvalidQuery(
                f"unsupported order {field!r}; expected one of {sorted(self.sort_fields)}"
            ) from None

    def validate(self, query: Query) -> BoundType:
        """Check order + filters of *query*, returning the sort field's type."""
        kind = self.field_type(query.order)
        unknown = sorted(name for name, _ in query.filters if name not in self.filter_fields)
        if unknown:
            raise InvalidQuery(f"unsupported filter(s): {', '.join(unknown)}")
        if query.snapshot_time is not None and self.version_field is None:
            raise InvalidQuery("snapshot_time is not supported by this store")
        return kind

    @abstractmethod
    async def scan(self, query: Query, scan: ScanRange, limit: int) -> list[Record]:
        """Return up to *limit* records matching *query* strictly inside *scan*.

        Records come back ordered by ``query.order`` in the scan's direction.
        Raises ``StoreUnavailable`` when the backend cannot answer.
        """


class AccessWindowPolicy(ABC):
    """Decides which part of a record set the caller may see."""

    @abstractmethod
    def floor(self, query: Query) -> Any | None:
        """Exclusive lower edge (parsed value) of the visible window, or None."""

    @abstractmethod
    async def is_limited(self, query: Query, last: str | None, scan: ScanRange) -> bool:
        """True when records beyond *last* exist but fall outside the window."""
