"""Request authentication: bearer token to active :class:`User`."""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from equimarket.auth.jwt import InvalidTokenError, decode_access_token
from equimarket.database import get_db
from equimarket.models.user import User

# Missing Authorization header is rejected by HTTPBearer itself (403).
_bearer_scheme = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(_bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Return the active user named by the bearer token, or fail with 401."""
    try:
        claims = decode_access_token(credentials.credentials)
    except InvalidTokenError as exc:
        raise _unauthorized(exc.reason) from None

    user = await db.get(User, claims.sub)
    if user is None:
        raise _unauthorized("Could not validate credentials")
    if not user.is_active:
        raise _unauthorized("User account is inactive")
    return user
