"""List response envelope.

Paginated list endpoints return
    {"items": [...], "total": <int>, "skip": <int>, "limit": <int>, "has_more": <bool>}
Single-item endpoints return the object directly.
"""


def paginated_response(items: list, total: int, skip: int = 0, limit: int = 50) -> dict:
    return {
        "items": items,
        "total": total,
        "skip": skip,
        "limit": limit,
        "has_more": (skip + len(items)) < total,
    }
