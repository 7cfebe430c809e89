"""
Zoo Registry API: FastAPI Dependencies
=======================================

What:  Request-scoped providers shared by the routers.
How:   `get_store` wraps the per-request session in a DocumentStore;
       `get_current_user` runs Authorize and records the user id on
       `request.state.user_id` for the access log.
Who:   Declared with `Depends(...)` in routes; the zoo and animal routers
       apply `get_current_user` to every endpoint at router level.
"""

from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.database import get_db_session
from zoo_api.models.user import User
from zoo_api.services.identity_service import identity_service
from zoo_api.store import DocumentStore


async def get_store(session: AsyncSession = Depends(get_db_session)) -> DocumentStore:
    return DocumentStore(session)


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    store: DocumentStore = Depends(get_store),
) -> User:
    """
    Resolve `Authorization: Bearer <token>` to the current user.

    Raises:
        AuthError:     Missing/malformed header or invalid/expired token (→ 401).
        NotFoundError: The token's account no longer exists (→ 404).
    """
    user = await identity_service.authorize(store, authorization)
    # A plain string: the ORM instance is detached once the session closes
    request.state.user_id = user.id
    return user
