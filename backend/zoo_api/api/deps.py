"""
Request-scoped dependencies: the unit of work and the calling principal.
"""

from typing import AsyncIterator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from zoo_api.core.exceptions import ForbiddenError, UnauthorizedError
from zoo_api.core.logging import bind_principal
from zoo_api.core.security import Principal, decode_access_token
from zoo_api.db.session import Database
from zoo_api.models.user import User

bearer_scheme = HTTPBearer(auto_error=False)


def get_database(request: Request) -> Database:
    return request.app.state.database


async def get_db(database: Database = Depends(get_database)) -> AsyncIterator[AsyncSession]:
    """
    One transaction per request, rolled back on error.

    Write routes commit explicitly before building their response; the commit
    on exit only settles read-only requests, which may run after the response
    has been sent.
    """
    async with database.session() as session:
        yield session


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Principal:
    if credentials is None:
        raise UnauthorizedError()

    username = decode_access_token(credentials.credentials)
    role = (await db.execute(select(User.role).where(User.username == username))).scalar_one_or_none()
    if role is None:
        raise UnauthorizedError("Unknown account")
    bind_principal(username, role)
    return Principal(username=username, role=role)


async def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_admin:
        raise ForbiddenError("Admin staff only")
    return principal


def ensure_can_act_for(principal: Principal, username: str) -> None:
    """Visitors may only touch their own reservations; admin staff may touch any."""
    if principal.username != username and not principal.is_admin:
        raise ForbiddenError("You can only manage your own reservations")
