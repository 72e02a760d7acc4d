# app/core/pagination.py
"""Page/limit parsing shared by every paginated endpoint."""

from app.core.config import WORKBOARD_DEFAULT_PAGE_SIZE, WORKBOARD_MAX_PAGE_SIZE
from app.query.schemas import Pagination


def _to_int(value, default: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def parse_pagination(page=None, limit=None, default_limit: int = WORKBOARD_DEFAULT_PAGE_SIZE) -> Pagination:
    """Clamp raw page/limit input: page >= 1, 1 <= limit <= the maximum page size."""
    page = max(1, _to_int(page, 1))
    limit = _to_int(limit, default_limit)
    limit = min(max(1, limit), WORKBOARD_MAX_PAGE_SIZE)
    return Pagination(page=page, limit=limit)
