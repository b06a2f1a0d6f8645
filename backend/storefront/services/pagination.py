from __future__ import annotations

import math

from flask import current_app

from ..validation import MAX_DB_INT


def resolve_page_args(page: int | None, limit: int | None) -> tuple[int, int]:
    """Clamp page to >= 1 and limit to 1..MAX_PAGE_SIZE, applying config defaults."""
    default_limit = current_app.config.get("DEFAULT_PAGE_SIZE", 10)
    max_limit = current_app.config.get("MAX_PAGE_SIZE", 100)

    page = max(page or 1, 1)
    limit = limit or default_limit
    limit = max(1, min(limit, max_limit))
    # keep the row offset inside the database integer range
    page = min(page, MAX_DB_INT // limit)
    return page, limit


def paginate(query, page: int | None, limit: int | None) -> tuple[list, dict]:
    """
    Window an ordered query and build the pagination block.

    totalItems is counted on the same filtered query, so it always agrees
    with the rows that the window is drawn from.
    """
    page, limit = resolve_page_args(page, limit)

    total = query.order_by(None).count()
    total_pages = math.ceil(total / limit) if total else 0

    rows = query.offset((page - 1) * limit).limit(limit).all()

    return rows, {
        "currentPage": page,
        "totalPages": total_pages,
        "totalItems": total,
        "itemsPerPage": limit,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
    }
