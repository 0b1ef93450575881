from typing import Optional, Tuple

from sqlalchemy.orm import Query


DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def get_pagination(page: Optional[int] = None, limit: Optional[int] = None) -> Tuple[int, int, int]:
    """Return (page, limit, offset) with page >= 1 and 1 <= limit <= 100."""
    page = max(1, page or DEFAULT_PAGE)
    limit = min(max(1, limit or DEFAULT_LIMIT), MAX_LIMIT)
    return page, limit, (page - 1) * limit


def paginate(query: Query, page: Optional[int], limit: Optional[int]) -> dict:
    page, limit, offset = get_pagination(page, limit)
    total = query.count()
    rows = query.offset(offset).limit(limit).all()
    return {
        "items": rows,
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": (total + limit - 1) // limit,
    }
