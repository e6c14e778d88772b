"""Shared fixtures — in-memory stores seeded with deterministic records."""

import pytest
from helpers import TEAM_B, make_records, make_store

from pagewise.pagination.fetcher import PageFetcher


@pytest.fixture
def store():
    return make_store(make_records(50) + make_records(7, team=TEAM_B))


@pytest.fixture
def fetcher(store):
    return PageFetcher(store, default_limit=10, max_limit=100)
