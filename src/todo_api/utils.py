from __future__ import annotations

import math
from typing import Any, Dict


# PUBLIC_INTERFACE
def pagination_meta(page: int, limit: int, total: int) -> Dict[str, Any]:
    """
    Build the pagination block for page-based list responses.

    Args:
        page: The 1-based page that was requested.
        limit: The page size used for the query.
        total: Total number of items, ignoring pagination.

    Returns:
        Dict with keys: page, limit, total, totalPages.
    """
    return {
        "page": int(page),
        "limit": int(limit),
        "total": int(total),
        "totalPages": math.ceil(total / limit) if limit > 0 else 0,
    }
