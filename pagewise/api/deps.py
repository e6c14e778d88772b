"""Dependency wiring — engine, session factory and the entries PageFetcher."""

from __future__ import annotations

from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from pagewise.core.config import Settings, get_settings
from pagewise.core.database import make_session_factory
from pagewise.models.entry import Entry
from pagewise.pagination.fetcher import PageFetcher
from pagewise.pagination.types import BoundType
from pagewise.store.retention import RetentionWindow
from pagewise.store.sql import SqlRecordStore

ENTRY_SORT_FIELDS = {
    "created_at": BoundType.TIMESTAMP,
    "name": BoundType.STRING,
}
ENTRY_FILTER_FIELDS = frozenset({"team_id"})

# ---------------------------------------------------------------------------
# Engine / fetcher (initialised by app lifespan)
# ---------------------------------------------------------------------------
_engine: AsyncEngine | None = None
_fetcher: PageFetcher | None = None


def build_entry_fetcher(
    session_factory: async_sessionmaker[AsyncSession], settings: Settings
) -> PageFetcher:
    """PageFetcher over the ``entries`` table, with retention when configured."""
    store = SqlRecordStore(
        session_factory,
        Entry.__table__,
        sort_fields=ENTRY_SORT_FIELDS,
        filter_fields=ENTRY_FILTER_FIELDS,
        version_field="updated_at",
    )
    policy = None
    if settings.retention_days is not None:
        policy = RetentionWindow(store, timedelta(days=settings.retention_days))
    return PageFetcher.from_settings(store, settings, policy)


def init_fetcher(settings: Settings | None = None) -> PageFetcher:
    """Create the async engine and the entries fetcher. Called once at startup."""
    global _engine, _fetcher  # noqa: PLW0603
    settings = settings or get_settings()
    _engine, session_factory = make_session_factory(settings.database_url)
    _fetcher = build_entry_fetcher(session_factory, settings)
    return _fetcher


async def dispose_engine() -> None:
    """Dispose the async engine, closing all pooled connections."""
    global _engine, _fetcher  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
        _engine = None
    _fetcher = None


def set_fetcher(fetcher: PageFetcher | None) -> None:
    """Override the entries fetcher (for testing)."""
    global _fetcher  # noqa: PLW0603
    _fetcher = fetcher


def get_entry_fetcher() -> PageFetcher:
    if _fetcher is None:
        raise RuntimeError("call init_fetcher() before handling requests")
    return _fetcher
