"""
Bearer-token handling.

Token issuance belongs to the login service; this module only needs to
verify a token and read the username out of it. The role is looked up from
the account row (see api/deps.py), so a role change takes effect on the next
request instead of when the token expires.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from zoo_api.core.config import get_settings
from zoo_api.core.exceptions import UnauthorizedError
from zoo_api.models.user import ROLE_ADMIN


@dataclass(frozen=True)
class Principal:
    username: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode["exp"] = expire
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> str:
    """Return the username carried by ``token`` or raise UnauthorizedError."""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        raise UnauthorizedError("Token has expired") from e
    except jwt.InvalidTokenError as e:
        raise UnauthorizedError("Invalid token") from e

    username = payload.get("sub")
    if not username:
        raise UnauthorizedError("Token has no subject")
    return username
