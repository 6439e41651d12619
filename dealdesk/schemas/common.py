"""Response envelope and pagination helpers shared by the routers."""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


def pagination(page: int, limit: int, total: int) -> dict[str, int]:
    pages = math.ceil(total / limit) if limit else 0
    return Pagination(page=page, limit=limit, total=total, pages=pages).model_dump()


def ok(data: Any) -> dict[str, Any]:
    return {"success": True, "data": data}


def dump(schema: type[BaseModel], obj: Any) -> dict[str, Any]:
    return schema.model_validate(obj).model_dump(mode="json")


def dump_page(key: str, schema: type[BaseModel], page: Any) -> dict[str, Any]:
    """Envelope a service ``Page`` as ``{key: [...], pagination: {...}}``."""
    return ok(
        {
            key: [dump(schema, item) for item in page.items],
            "pagination": pagination(page.page, page.limit, page.total),
        }
    )
