"""Range-bound codec — sort-field values to and from their wire strings."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pagewise.errors import InvalidBound
from pagewise.pagination.types import BoundType

MAX_BOUND_LENGTH = 1024


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_bound(kind: BoundType, raw: str) -> Any:
    """Parse a wire bound into a comparable value of the sort field's type.

    Naive timestamps are taken as UTC. Raises :class:`InvalidBound` for
    malformed or oversized values.
    """
    if not isinstance(raw, str):
        raise InvalidBound(f"bound must be a string, got {type(raw).__name__}")
    if len(raw) > MAX_BOUND_LENGTH:
        raise InvalidBound(f"bound exceeds {MAX_BOUND_LENGTH} characters")
    try:
        if kind is BoundType.TIMESTAMP:
            return _as_utc(datetime.fromisoformat(raw))
        if kind is BoundType.INTEGER:
            return int(raw)
        return raw
    except ValueError as exc:
        raise InvalidBound(f"invalid {kind.value} bound: {raw!r}") from exc


def coerce_value(kind: BoundType, value: Any) -> Any:
    """Normalise a stored record value so it compares with parsed bounds."""
    if kind is BoundType.TIMESTAMP:
        if isinstance(value, datetime):
            return _as_utc(value)
        return parse_bound(kind, str(value))
    if kind is BoundType.INTEGER:
        return int(value)
    return str(value)


def format_bound(kind: BoundType, value: Any) -> str:
    """Render a sort-field value as the opaque bound string sent on the wire.

    UTC timestamps use the ``Z`` suffix, the same text the record's own value
    carries in a JSON response, so a bound taken from a record matches one
    issued by the fetcher.
    """
    value = coerce_value(kind, value)
    if kind is BoundType.TIMESTAMP:
        text = value.isoformat()
        if text.endswith("+00:00"):
            return text[:-6] + "Z"
        return text
    return str(value)
