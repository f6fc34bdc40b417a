"""
Authentication dependencies for FastAPI.
"""

from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from bizledger.app.core.exceptions import AuthenticationError
from bizledger.app.core.jwt import verify_token
from bizledger.app.schemas.auth import Principal

# Missing credentials are reported by get_current_user, not by the scheme
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Principal:
    if credentials is None:
        raise AuthenticationError("Not authenticated")
    return verify_token(credentials.credentials)
