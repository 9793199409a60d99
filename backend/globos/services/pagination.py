# Overview: Page/limit slicing and substring patterns for list and search queries.

LIKE_ESCAPE = "\\"


def contains_pattern(term: str) -> str:
    """'%term%' with LIKE wildcards in term matched literally (use escape=LIKE_ESCAPE)."""
    escaped = (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def paginate(query, page: int, limit: int) -> tuple[list, dict]:
    """
    Slice query for a 1-based page.

    Returns (rows, pagination) where pagination carries currentPage,
    totalPages, totalItems, itemsPerPage, hasNextPage and hasPrevPage.
    """
    total = query.order_by(None).count()
    total_pages = (total + limit - 1) // limit if total > 0 else 0

    rows = query.offset((page - 1) * limit).limit(limit).all()

    return rows, {
        "currentPage": page,
        "totalPages": total_pages,
        "totalItems": total,
        "itemsPerPage": limit,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
    }
