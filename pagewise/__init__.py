"""pagewise — keyset list pagination: server PageFetcher + client PaginatedListCache."""

from pagewise.client.cache import ListSnapshot, ListStatus, PaginatedListCache
from pagewise.client.periods import Period
from pagewise.client.transport import HttpTransport, LocalTransport
from pagewise.errors import InvalidBound, InvalidQuery, PaginationError, StoreUnavailable
from pagewise.pagination.fetcher import PageFetcher
from pagewise.pagination.types import BoundType, Direction, FetchResult, PaginationState, Query
from pagewise.pagination.wire import ListRequest, ListResponse
from pagewise.store.memory import MemoryRecordStore
from pagewise.store.retention import RetentionWindow

__all__ = [
    "BoundType",
    "Direction",
    "FetchResult",
    "HttpTransport",
    "InvalidBound",
    "InvalidQuery",
    "ListRequest",
    "ListResponse",
    "ListSnapshot",
    "ListStatus",
    "LocalTransport",
    "MemoryRecordStore",
    "PageFetcher",
    "PaginatedListCache",
    "PaginationError",
    "PaginationState",
    "Period",
    "Query",
    "RetentionWindow",
    "StoreUnavailable",
]
