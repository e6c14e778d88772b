"""SQLAlchemy record store — keyset range scans against an async session factory."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from typing import Any

import structlog
from sqlalchemy import Select, Table, select
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pagewise.errors import InvalidQuery, StoreUnavailable
from pagewise.pagination.types import BoundType, Query, Record
from pagewise.store.base import RecordStore, ScanRange

logger = structlog.get_logger(__name__)


class SqlRecordStore(RecordStore):
    """Pages one table. Ordering is ``(sort field, primary key)`` in the scan's
    direction, so rows sharing a sort value keep a stable order between calls.

    Filters are equality predicates; wire values are coerced to the column's
    Python type (e.g. ``uuid.UUID`` for UUID columns).
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        table: Table,
        *,
        sort_fields: Mapping[str, BoundType],
        filter_fields: Iterable[str] = (),
        version_field: str | None = None,
    ) -> None:
        super().__init__(sort_fields, filter_fields, version_field=version_field)
        missing = [
            name
            for name in (*self.sort_fields, *self.filter_fields, version_field)
            if name is not None and name not in table.c
        ]
        if missing:
            raise ValueError(f"{table.name} has no column(s): {', '.join(missing)}")
        self._session_factory = session_factory
        self.table = table

    def _coerce_filter(self, name: str, value: Any) -> Any:
        column = self.table.c[name]
        try:
            python_type = column.type.python_type
        except NotImplementedError:
            return value
        if isinstance(value, python_type):
            return value
        try:
            return python_type(value)
        except (TypeError, ValueError) as exc:
            raise InvalidQuery(f"invalid value for filter {name!r}: {value!r}") from exc

    def build_statement(self, query: Query, scan: ScanRange, limit: int) -> Select:
        """Compose the keyset SELECT for one scan (exposed for inspection)."""
        table = self.table
        column = table.c[query.order]
        stmt = select(table)

        for name, value in query.filters:
            stmt = stmt.where(table.c[name] == self._coerce_filter(name, value))
        if query.snapshot_time is not None and self.version_field is not None:
            stmt = stmt.where(table.c[self.version_field] <= query.snapshot_time)
        if scan.lower is not None:
            stmt = stmt.where(column > scan.lower)
        if scan.upper is not None:
            stmt = stmt.where(column < scan.upper)

        pk_columns = list(table.primary_key.columns)
        if scan.descending:
            ordering = [column.desc(), *(pk.desc() for pk in pk_columns)]
        else:
            ordering = [column.asc(), *(pk.asc() for pk in pk_columns)]
        return stmt.order_by(*ordering).limit(limit)

    async def scan(self, query: Query, scan: ScanRange, limit: int) -> list[Record]:
        stmt = self.build_statement(query, scan, limit)
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return [dict(row) for row in result.mappings().all()]
        except (OperationalError, InterfaceError, OSError, asyncio.TimeoutError) as exc:
            logger.warning("store.scan_failed", table=self.table.name, error=str(exc))
            raise StoreUnavailable(f"{self.table.name} scan failed: {exc}") from exc
