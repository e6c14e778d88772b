"""Core pagination types shared by the server fetcher and the client cache."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

Record = Mapping[str, Any]


class PaginationState(str, enum.Enum):
    """Tail state of a query after a page: only CONTINUE is non-terminal."""

    CONTINUE = "CONTINUE"
    END = "END"
    LIMITED = "LIMITED"

    @property
    def is_terminal(self) -> bool:
        return self is not PaginationState.CONTINUE


class Direction(str, enum.Enum):
    AFTER = "after"
    BEFORE = "before"


class BoundType(str, enum.Enum):
    """Comparable type a store declares for each sort field."""

    TIMESTAMP = "timestamp"
    INTEGER = "integer"
    STRING = "string"


@dataclass(frozen=True)
class Query:
    """Identity of a paginated record set — the client cache key.

    ``filters`` is normalised to a tuple of ``(name, value)`` pairs sorted by
    name, so two queries built from the same values compare and hash equal
    regardless of construction order. Limit and bound are not part of it.
    """

    order: str
    order_desc: bool = False
    filters: tuple[tuple[str, Any], ...] = ()
    snapshot_time: datetime | None = None

    def __post_init__(self) -> None:
        pairs = dict(self.filters)
        object.__setattr__(
            self, "filters", tuple(sorted(pairs.items(), key=lambda kv: kv[0]))
        )

    @classmethod
    def of(
        cls,
        order: str,
        *,
        order_desc: bool = False,
        snapshot_time: datetime | None = None,
        **filters: Any,
    ) -> Query:
        """Build a query from keyword filters, e.g. ``Query.of("name", team_id=t)``."""
        return cls(order, order_desc, tuple(filters.items()), snapshot_time)

    @property
    def filter_map(self) -> dict[str, Any]:
        return dict(self.filters)


@dataclass
class FetchResult:
    """One bounded page plus pagination metadata."""

    records: list[Record]
    state: PaginationState
    last: str | None = None
    count: int = field(init=False)

    def __post_init__(self) -> None:
        self.count = len(self.records)
