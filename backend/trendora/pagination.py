from __future__ import annotations


DEFAULT_PER_PAGE = 10
MAX_PER_PAGE = 100


def paginate(query, *, page: int | None, per_page: int | None, serialize) -> dict:
    """
    Offset pagination over a SQLAlchemy query.

    Returns {"items", "count", "pagination": {...}}; per_page is clamped to
    1..MAX_PER_PAGE and page to >= 1.
    """
    per_page = max(min(per_page or DEFAULT_PER_PAGE, MAX_PER_PAGE), 1)
    page = max(page or 1, 1)

    total = query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    rows = query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [serialize(r) for r in rows],
        "count": len(rows),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
