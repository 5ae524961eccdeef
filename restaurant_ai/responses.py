"""Response envelope helpers.

Every endpoint answers with ``{"success": true, "data": ...}``; paginated
lists add a ``pagination`` block. Failures are produced by the handlers in
``errors.py``.
"""
from __future__ import annotations

import math
from typing import Any


def ok(data: Any = None, **extra: Any) -> dict[str, Any]:
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body


def paginated(items: list, total: int, page: int, limit: int, **extra: Any) -> dict[str, Any]:
    return ok(
        items,
        pagination={
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if limit else 0,
        },
        **extra,
    )
