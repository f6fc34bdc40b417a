"""
Bearer token handling.

Tokens are HS256 JWTs carrying `sub`, `user_id` and `role`. Issuing is only
needed by tooling and tests; the API itself only verifies.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from pydantic import ValidationError

from bizledger.app.core.config import settings
from bizledger.app.core.exceptions import AuthenticationError
from bizledger.app.models.enums import UserRole
from bizledger.app.schemas.auth import Principal


def issue_token(
    user_id: str,
    username: str,
    role: UserRole,
    expires_delta: Optional[timedelta] = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    claims = {
        "sub": username,
        "user_id": user_id,
        "role": UserRole(role).value,
        "exp": expire,
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def verify_token(token: str) -> Principal:
    """
    Verify signature and expiry, then validate the claims.

    Raises:
        AuthenticationError: bad signature, expired, or claims missing/unknown role
    """
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        raise AuthenticationError("Could not validate credentials")

    try:
        return Principal.model_validate(claims)
    except ValidationError:
        raise AuthenticationError("Invalid token payload")
