"""Entries router — the paginated list endpoint."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, Request

from pagewise.api.deps import get_entry_fetcher
from pagewise.pagination.fetcher import PageFetcher
from pagewise.pagination.wire import ListRequest, ListResponse

router = APIRouter()


@router.get("", response_model=ListResponse)
async def list_entries(
    request: Request,
    order: str = Query(..., description="Sort field: created_at | name"),
    order_desc: bool = Query(False),
    limit: int = Query(0, ge=0, description="0 selects the server default"),
    before: str | None = Query(None, description="Exclusive bound, walk backwards"),
    after: str | None = Query(None, description="Exclusive bound, continue forwards"),
    team_id: str | None = Query(None),
    snapshot_time: datetime | None = Query(None),
    fetcher: PageFetcher = Depends(get_entry_fetcher),
) -> ListResponse:
    # declared params document + validate; unknown params still reach the
    # store as filters so it can reject them
    wire = ListRequest.from_params(request.query_params)
    bound, direction = wire.bound()
    result = await fetcher.fetch(wire.query(), bound, direction, wire.limit)
    return ListResponse.from_result(result)
