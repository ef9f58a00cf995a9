from typing import Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from study_overlay.database import get_db
from study_overlay.exceptions import AuthenticationError
from study_overlay.models.user import User
from study_overlay.services.user_service import UserService
from study_overlay.utils.jwt import verify_token, is_token_blacklisted

security = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> UUID:
    """Stable identity of the caller, as asserted by the auth provider's token."""
    if credentials is None:
        raise AuthenticationError(detail="Unauthorized")
    token = credentials.credentials
    payload = verify_token(token)
    if payload is None:
        raise AuthenticationError(detail="Could not validate credentials")
    if payload.get("type") != "access":
        raise AuthenticationError(detail="Invalid token type")
    if await is_token_blacklisted(token):
        raise AuthenticationError(detail="Token has been revoked")
    try:
        return UUID(str(payload.get("sub")))
    except ValueError:
        raise AuthenticationError(detail="Could not validate credentials")


async def get_current_user(
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> User:
    user = await UserService.get_profile(db, user_id=user_id)
    if user is None:
        raise AuthenticationError(detail="User not found")
    return user


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    if credentials is None:
        raise AuthenticationError(detail="Unauthorized")
    return credentials.credentials
