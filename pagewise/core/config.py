"""Runtime settings read from ``PAGEWISE_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    default_limit: int | None = 20
    max_limit: int = 100
    database_url: str = "postgresql+asyncpg://localhost/pagewise"
    retention_days: float | None = None
    cors_origins: tuple[str, ...] = ("http://localhost:3000",)


def _env_optional_number(key: str, default: str | None, cast):
    raw = os.environ.get(key, default)
    if raw is None or raw.strip() == "":
        return None
    return cast(raw)


def get_settings() -> Settings:
    """Build :class:`Settings` from the environment.

    Reads:
        PAGEWISE_DEFAULT_LIMIT   — limit used when a request sends ``limit=0``
                                   (default: 20, empty string disables)
        PAGEWISE_MAX_LIMIT       — largest accepted limit (default: 100)
        PAGEWISE_DATABASE_URL    — SQLAlchemy async URL for the SQL store
        PAGEWISE_RETENTION_DAYS  — access window on ``created_at`` (default: off)
        PAGEWISE_CORS_ORIGINS    — comma-separated API CORS origins
    """
    cors = os.environ.get("PAGEWISE_CORS_ORIGINS", "http://localhost:3000")
    return Settings(
        default_limit=_env_optional_number("PAGEWISE_DEFAULT_LIMIT", "20", int),
        max_limit=int(os.environ.get("PAGEWISE_MAX_LIMIT", 100)),
        database_url=os.environ.get(
            "PAGEWISE_DATABASE_URL", "postgresql+asyncpg://localhost/pagewise"
        ),
        retention_days=_env_optional_number("PAGEWISE_RETENTION_DAYS", None, float),
        cors_origins=tuple(o.strip() for o in cors.split(",") if o.strip()),
    )
