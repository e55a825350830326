"""Bearer access tokens.

The account service issues these; the marketplace mints them only in tests and
local tooling, and otherwise just verifies them into :class:`AccessClaims`.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Literal

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel, ValidationError

from equimarket.config import settings


class InvalidTokenError(Exception):
    """The bearer token cannot be trusted; ``reason`` is safe to show the caller."""

    def __init__(self, reason: str = "Could not validate credentials"):
        super().__init__(reason)
        self.reason = reason


class AccessClaims(BaseModel):
    sub: uuid.UUID
    type: Literal["access"]
    exp: datetime
    iat: datetime | None = None
    role: str | None = None


def create_access_token(
    user_id: uuid.UUID,
    *,
    role: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes))
    claims = {"sub": str(user_id), "type": "access", "iat": now, "exp": expire}
    if role is not None:
        claims["role"] = role
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> AccessClaims:
    """Verify signature and expiry, then validate the claim set.

    Raises:
        InvalidTokenError: for expired, forged or malformed tokens, and for
            tokens that are not access tokens.
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise InvalidTokenError("Token has expired") from None
    except JWTError:
        raise InvalidTokenError() from None

    if payload.get("type") != "access":
        raise InvalidTokenError("Invalid token type")

    try:
        return AccessClaims.model_validate(payload)
    except ValidationError:
        raise InvalidTokenError() from None
