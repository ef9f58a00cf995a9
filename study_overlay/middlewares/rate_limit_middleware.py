from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from study_overlay.config import settings
from study_overlay.redis_client import get_redis
from study_overlay.schemas.response import error_payload
from study_overlay.utils.jwt import verify_token
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Fixed-window request budget per signed-in user (or per address for
    anonymous callers), backed by Redis.
    Only applies to the study-room API, which clients poll every few seconds.
    """

    RATE_LIMITED_PREFIXES = [
        "/study-room",
    ]

    def __init__(
        self,
        app,
        max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
        exclude_paths: list = None,
    ):
        super().__init__(app)
        self.max_requests = max_requests or settings.rate_limit_requests
        self.window_seconds = window_seconds or settings.rate_limit_window_seconds
        self.exclude_paths = exclude_paths or [
            "/docs",
            "/redoc",
            "/openapi.json",
            "/health",
        ]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and apply rate limiting if needed"""

        if self._should_skip_rate_limiting(request) or not self._is_rate_limited_endpoint(request):
            return await call_next(request)

        key = f"rate_limit:{self._get_client_key(request)}"
        try:
            redis = await get_redis()
            count = await redis.incr(key)
            if count == 1:
                await redis.expire(key, self.window_seconds)
        except Exception as e:
            # Fail open when Redis is unreachable
            logger.warning(f"Rate limiting unavailable, allowing request: {e}")
            return await call_next(request)

        if count > self.max_requests:
            logger.info(f"Rate limit exceeded for {key}")
            return self._create_rate_limit_response()

        return await call_next(request)

    def _should_skip_rate_limiting(self, request: Request) -> bool:
        path = request.url.path
        return any(path.startswith(exclude_path) for exclude_path in self.exclude_paths)

    def _is_rate_limited_endpoint(self, request: Request) -> bool:
        path = request.url.path
        return any(path.startswith(prefix) for prefix in self.RATE_LIMITED_PREFIXES)

    def _get_client_key(self, request: Request) -> str:
        user_id = self._get_user_id_from_request(request)
        if user_id:
            return f"user:{user_id}"
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return f"ip:{forwarded_for.split(',')[0].strip()}"
        return f"ip:{request.client.host if request.client else 'unknown'}"

    def _get_user_id_from_request(self, request: Request) -> Optional[str]:
        """User id from a valid access token, or None."""
        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.lower().startswith("bearer "):
            return None
        payload = verify_token(auth_header[7:].strip())
        if payload is None or payload.get("type") != "access":
            return None
        return payload.get("sub")

    def _create_rate_limit_response(self) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content=error_payload("Rate limit exceeded", "Too many requests. Please try again later"),
            headers={"Retry-After": str(self.window_seconds)},
        )
