"""Pagination error taxonomy — shared by the fetcher, stores, client and API."""


class PaginationError(Exception):
    """Base pagination exception."""

    code = "pagination_error"


class InvalidBound(PaginationError):
    """Range bound cannot be parsed as the sort field's type (-> HTTP 422)."""

    code = "invalid_bound"


class InvalidQuery(PaginationError):
    """Unsupported order / filter / limit combination (-> HTTP 422)."""

    code = "invalid_query"


class StoreUnavailable(PaginationError):
    """Backing store query could not complete (-> HTTP 503)."""

    code = "store_unavailable"


_BY_CODE: dict[str, type[PaginationError]] = {
    cls.code: cls for cls in (InvalidBound, InvalidQuery, StoreUnavailable)
}


def error_for_code(code: str | None, detail: str) -> PaginationError:
    """Rebuild a taxonomy error from its wire ``code`` (unknown codes -> base class)."""
    cls = _BY_CODE.get(code or "", PaginationError)
    return cls(detail)
