"""FastAPI dependencies: acting-user resolution and list query parameters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from fastapi import Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from .config import settings
from .database import get_db
from .errors import AuthenticationRequired, AuthMisconfigured
from .security.policy import Actor
from .security.session import decode_session_token, extract_token
from .services.user_svc import get_user_row


async def get_actor(request: Request, db: AsyncSession = Depends(get_db)) -> Actor:
    """Resolve the acting user from the session cookie or bearer token.

    The role comes from the stored user row, not the token, so role changes
    and deactivation apply on the next request.
    """
    if not settings.auth_secret.strip():
        raise AuthMisconfigured()

    claims = decode_session_token(settings, extract_token(request, settings))
    if claims is None:
        raise AuthenticationRequired()

    user = await get_user_row(db, claims.user_id)
    if user is None or not user.is_active:
        raise AuthenticationRequired()
    return Actor(id=user.id, role=user.role)


@dataclass(frozen=True)
class ListParams:
    page: int
    limit: int | None
    search: str | None
    sort_by: str | None
    sort_order: str

    def as_kwargs(self) -> dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "search": self.search,
            "sort_by": self.sort_by,
            "sort_order": self.sort_order,
        }


def list_params(
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    search: str | None = Query(None),
    sort_by: str | None = Query(None),
    sort_order: Literal["asc", "desc"] = Query("desc"),
) -> ListParams:
    return ListParams(
        page=page, limit=limit, search=search, sort_by=sort_by, sort_order=sort_order
    )
