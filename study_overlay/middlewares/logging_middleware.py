"""
Request/response logging middleware and room activity logging.
"""
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Dict, Any, Optional, Set
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

request_logger = logging.getLogger("request")
performance_logger = logging.getLogger("performance")
activity_logger = logging.getLogger("activity")

SENSITIVE_HEADERS = {
    "authorization", "cookie", "x-api-key", "x-auth-token",
    "authentication", "proxy-authorization"
}

SLOW_REQUEST_SECONDS = 1.0
ROOM_PREFIX = "/study-room/"


def is_polling_request(request: Request) -> bool:
    """Pings and roster reads, which every open overlay sends every few seconds."""
    path = request.url.path
    if request.method == "POST":
        return path == f"{ROOM_PREFIX}ping"
    return (
        request.method == "GET"
        and path.startswith(ROOM_PREFIX)
        and not path.startswith(f"{ROOM_PREFIX}code/")
    )


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each request and stamps X-Request-ID / X-Process-Time on the response.

    Successful polling traffic is logged at DEBUG so it does not drown out
    joins, removals and errors at INFO.
    """

    def __init__(
        self,
        app,
        exclude_paths: Optional[Set[str]] = None,
        include_headers: bool = False
    ):
        super().__init__(app)
        self.exclude_paths = exclude_paths or {"/health", "/favicon.ico"}
        self.include_headers = include_headers

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in self.exclude_paths:
            return await call_next(request)

        request_id = getattr(request.state, 'request_id', None) or str(uuid.uuid4())
        request.state.request_id = request_id
        polling = is_polling_request(request)

        start_time = time.perf_counter()
        request_logger.log(
            logging.DEBUG if polling else logging.INFO,
            f"{request.method} {request.url.path}",
            extra=self._request_fields(request, request_id),
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            request_logger.error(
                f"{request.method} {request.url.path} raised {type(exc).__name__}",
                extra={"request_id": request_id, "process_time": time.perf_counter() - start_time},
                exc_info=True
            )
            raise

        process_time = time.perf_counter() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        response.headers["X-Request-ID"] = request_id

        self._log_response(request, response, request_id, process_time, polling)
        return response

    def _request_fields(self, request: Request, request_id: str) -> Dict[str, Any]:
        fields = {
            "request_id": request_id,
            "client_ip": self._get_client_ip(request),
            "user_agent": request.headers.get("user-agent", ""),
        }
        if request.query_params:
            fields["query_params"] = dict(request.query_params)
        if self.include_headers:
            fields["headers"] = {
                key: "[REDACTED]" if key.lower() in SENSITIVE_HEADERS else value
                for key, value in request.headers.items()
            }
        return fields

    def _log_response(
        self, request: Request, response: Response, request_id: str, process_time: float, polling: bool
    ) -> None:
        fields = {
            "request_id": request_id,
            "status_code": response.status_code,
            "process_time": process_time,
        }
        message = f"{request.method} {request.url.path} -> {response.status_code} ({process_time:.3f}s)"

        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.DEBUG if polling else logging.INFO
        request_logger.log(level, message, extra=fields)

        if process_time > SLOW_REQUEST_SECONDS:
            performance_logger.warning(f"Slow request detected: {process_time:.2f}s", extra=fields)

    def _get_client_ip(self, request: Request) -> str:
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        return request.client.host if request.client else "unknown"


class RoomActivityLogger:
    """Structured log lines for membership changes in study rooms."""

    @staticmethod
    def log_room_action(
        user_id: Any,
        action: str,
        room_id: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        activity_logger.info(
            f"Room activity: {action}",
            extra={
                "user_id": str(user_id),
                "action": action,
                "room_id": str(room_id) if room_id else None,
                "details": details or {},
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )
