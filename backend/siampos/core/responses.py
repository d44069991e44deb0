"""Standardized API response helpers.

Successful endpoints return a consistent envelope:
    {"success": true, "message"?: str, "data"?: ..., "pagination"?: {...}}

Use success_response() for single objects and plain lists, and
paginated_response() for paged queries.
"""

import math
from typing import Any, Optional


def success_response(data: Any = None, message: Optional[str] = None) -> dict:
    """Wrap a payload in the success envelope, omitting absent keys."""
    body: dict = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


def paginated_response(
    items: list,
    total: int,
    page: int = 1,
    limit: int = 20,
) -> dict:
    """Wrap a page of items in the success envelope.

    Returns:
        {"success": True, "data": items,
         "pagination": {"page", "limit", "total", "pages"}}
    """
    return {
        "success": True,
        "data": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if limit else 0,
        },
    }
