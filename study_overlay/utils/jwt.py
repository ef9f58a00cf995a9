from jose import JWTError, jwt
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from study_overlay.config import settings
from study_overlay.redis_client import get_redis

SECRET_KEY = settings.secret_key
ALGORITHM = settings.algorithm
ACCESS_TOKEN_EXPIRE_MINUTES = settings.access_token_expire_minutes
REFRESH_TOKEN_EXPIRE_MINUTES = settings.refresh_token_expire_minutes

# Create JWT access token
def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

# Create refresh token
def create_refresh_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=REFRESH_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "type": "refresh"})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

# Verify and decode JWT token; expired and tampered tokens both yield None
def verify_token(token: str) -> Optional[Dict[str, Any]]:
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None

# Check if token payload represents a refresh token
def is_refresh_token_payload(payload: Dict[str, Any]) -> bool:
    return payload is not None and payload.get("type") == "refresh"

# Seconds until the token's exp claim, never negative
def seconds_until_expiry(payload: Dict[str, Any]) -> int:
    exp = payload.get("exp")
    if exp is None:
        return 0
    return max(int(exp - datetime.now(timezone.utc).timestamp()), 0)

# Blacklist token in Redis
async def blacklist_token(token: str, expires_in: int) -> None:
    redis = await get_redis()
    await redis.setex(f"blacklist:{token}", max(expires_in, 1), "1")

# Check if token is blacklisted
async def is_token_blacklisted(token: str) -> bool:
    redis = await get_redis()
    return await redis.exists(f"blacklist:{token}") == 1
