"""Wire contract for list endpoints — request params and response envelope."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_serializer

from pagewise.errors import InvalidQuery
from pagewise.pagination.types import Direction, FetchResult, PaginationState, Query

RESERVED_PARAMS = frozenset({"limit", "order", "order_desc", "before", "after", "snapshot_time"})

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


class ListRequest(BaseModel):
    """``{limit, order, order_desc, before?, after?, ...filters}``."""

    model_config = ConfigDict(frozen=True)

    limit: int = Field(0, ge=0)
    order: str
    order_desc: bool = False
    before: str | None = None
    after: str | None = None
    filters: dict[str, str] = Field(default_factory=dict)
    snapshot_time: datetime | None = None

    @classmethod
    def for_query(
        cls,
        query: Query,
        *,
        limit: int = 0,
        before: str | None = None,
        after: str | None = None,
    ) -> ListRequest:
        return cls(
            limit=limit,
            order=query.order,
            order_desc=query.order_desc,
            before=before,
            after=after,
            filters={name: str(value) for name, value in query.filters},
            snapshot_time=query.snapshot_time,
        )

    @classmethod
    def from_params(cls, params: Mapping[str, str]) -> ListRequest:
        """Parse flat query-string params; unreserved keys become filters."""
        if "order" not in params:
            raise InvalidQuery("order is required")
        raw_desc = params.get("order_desc", "false").strip().lower()
        if raw_desc not in _TRUE | _FALSE:
            raise InvalidQuery(f"order_desc must be a boolean, got {raw_desc!r}")
        try:
            limit = int(params.get("limit", "0"))
            snapshot_raw = params.get("snapshot_time")
            snapshot = datetime.fromisoformat(snapshot_raw) if snapshot_raw else None
        except ValueError as exc:
            raise InvalidQuery(str(exc)) from exc
        if limit < 0:
            raise InvalidQuery(f"limit must be >= 0, got {limit}")
        return cls(
            limit=limit,
            order=params["order"],
            order_desc=raw_desc in _TRUE,
            before=params.get("before"),
            after=params.get("after"),
            filters={k: v for k, v in params.items() if k not in RESERVED_PARAMS},
            snapshot_time=snapshot,
        )

    def to_params(self) -> dict[str, str]:
        params: dict[str, str] = {
            "limit": str(self.limit),
            "order": self.order,
            "order_desc": "true" if self.order_desc else "false",
        }
        if self.before is not None:
            params["before"] = self.before
        if self.after is not None:
            params["after"] = self.after
        if self.snapshot_time is not None:
            params["snapshot_time"] = self.snapshot_time.isoformat()
        params.update(self.filters)
        return params

    def query(self) -> Query:
        return Query(self.order, self.order_desc, tuple(self.filters.items()), self.snapshot_time)

    def bound(self) -> tuple[str | None, Direction]:
        """Return ``(bound, direction)``; ``before`` and ``after`` are exclusive."""
        if self.before is not None and self.after is not None:
            raise InvalidQuery("before and after are mutually exclusive")
        if self.before is not None:
            return self.before, Direction.BEFORE
        return self.after, Direction.AFTER


class PaginationMeta(BaseModel):
    state: PaginationState
    last: str | None = None

    @model_serializer(mode="wrap")
    def _drop_missing_last(self, handler):
        data = handler(self)
        if data.get("last") is None:
            data.pop("last", None)
        return data


class ListResponse(BaseModel):
    """``{records: [...], pagination: {state, last?}}``."""

    records: list[dict[str, Any]]
    pagination: PaginationMeta

    @classmethod
    def from_result(cls, result: FetchResult) -> ListResponse:
        return cls(
            records=[dict(r) for r in result.records],
            pagination=PaginationMeta(state=result.state, last=result.last),
        )

    def as_wire(self) -> ListResponse:
        """Round-trip through JSON types, as a remote caller would see it."""
        return ListResponse.model_validate(self.model_dump(mode="json"))
