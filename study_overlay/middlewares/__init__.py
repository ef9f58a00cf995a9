from .auth_middleware import get_current_user, get_current_user_id, get_bearer_token
from .rate_limit_middleware import RateLimitMiddleware
from .error_handler import (
    ErrorResponse,
    custom_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
    register_exception_handlers,
)
from .logging_middleware import LoggingMiddleware, RoomActivityLogger

__all__ = [
    # Auth dependencies
    "get_current_user",
    "get_current_user_id",
    "get_bearer_token",
    "RateLimitMiddleware",

    # Error handling
    "ErrorResponse",
    "custom_exception_handler",
    "validation_exception_handler",
    "unhandled_exception_handler",
    "register_exception_handlers",

    # Logging
    "LoggingMiddleware",
    "RoomActivityLogger",
]
