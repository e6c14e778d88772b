"""In-memory ordered record store — sorted index per sort field, bisect scans."""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from collections.abc import Iterable, Mapping
from typing import Any

from pagewise.pagination.bounds import coerce_value
from pagewise.pagination.types import BoundType, Query, Record
from pagewise.store.base import RecordStore, ScanRange


class _FieldIndex:
    """Parallel sorted lists: field values, (value, pk) keys and rows."""

    def __init__(self) -> None:
        self.values: list[Any] = []
        self.keys: list[tuple[Any, Any]] = []
        self.rows: list[Record] = []

    def insert(self, value: Any, pk: Any, row: Record) -> None:
        pos = bisect_right(self.keys, (value, pk))
        self.values.insert(pos, value)
        self.keys.insert(pos, (value, pk))
        self.rows.insert(pos, row)

    def remove(self, value: Any, pk: Any) -> None:
        pos = bisect_left(self.keys, (value, pk))
        if pos < len(self.keys) and self.keys[pos] == (value, pk):
            del self.values[pos]
            del self.keys[pos]
            del self.rows[pos]


class MemoryRecordStore(RecordStore):
    """Dict records held in memory, ordered by ``(sort value, id)`` per field.

    Usage::

        store = MemoryRecordStore(
            rows,
            sort_fields={"created_at": BoundType.TIMESTAMP, "name": BoundType.STRING},
            filter_fields={"team_id"},
        )
    """

    def __init__(
        self,
        records: Iterable[Record] = (),
        *,
        sort_fields: Mapping[str, BoundType],
        filter_fields: Iterable[str] = (),
        id_field: str = "id",
        version_field: str | None = None,
    ) -> None:
        super().__init__(sort_fields, filter_fields, version_field=version_field)
        self.id_field = id_field
        self._rows: dict[Any, Record] = {}
        self._indexes = {name: _FieldIndex() for name in self.sort_fields}
        for record in records:
            self.put(record)

    def __len__(self) -> int:
        return len(self._rows)

    def put(self, record: Record) -> None:
        """Insert or replace *record* (keyed by ``id_field``)."""
        pk = record[self.id_field]
        if pk in self._rows:
            self.delete(pk)
        row = dict(record)
        self._rows[pk] = row
        for name, index in self._indexes.items():
            index.insert(coerce_value(self.sort_fields[name], row[name]), pk, row)

    def delete(self, pk: Any) -> bool:
        row = self._rows.pop(pk, None)
        if row is None:
            return False
        for name, index in self._indexes.items():
            index.remove(coerce_value(self.sort_fields[name], row[name]), pk)
        return True

    def _matches(self, query: Query, row: Record) -> bool:
        for name, value in query.filters:
            if str(row.get(name)) != str(value):
                return False
        if query.snapshot_time is not None and self.version_field is not None:
            version = coerce_value(BoundType.TIMESTAMP, row[self.version_field])
            if version > coerce_value(BoundType.TIMESTAMP, query.snapshot_time):
                return False
        return True

    async def scan(self, query: Query, scan: ScanRange, limit: int) -> list[Record]:
        index = self._indexes[query.order]
        start = 0 if scan.lower is None else bisect_right(index.values, scan.lower)
        stop = len(index.values) if scan.upper is None else bisect_left(index.values, scan.upper)
        positions = range(stop - 1, start - 1, -1) if scan.descending else range(start, stop)

        out: list[Record] = []
        for pos in positions:
            if len(out) >= limit:
                break
            row = index.rows[pos]
            if self._matches(query, row):
                out.append(dict(row))
        return out
