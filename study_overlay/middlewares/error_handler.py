"""
Application-wide exception handlers.
Anything a route does not convert itself ends up here and is rendered in the
same envelope the routes use.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from study_overlay.exceptions import BaseCustomException

# Configure logger
logger = logging.getLogger(__name__)


class ErrorResponse:
    """Standard error response format."""

    def __init__(
        self,
        error_code: str,
        message: str,
        user_message: str,
        details: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None,
        timestamp: Optional[str] = None
    ):
        self.error_code = error_code
        self.message = message
        self.user_message = user_message
        self.details = details or {}
        self.request_id = request_id or str(uuid.uuid4())
        self.timestamp = timestamp or datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON response."""
        return {
            "success": False,
            "message": self.message,
            "data": None,
            "errors": {
                "code": self.error_code,
                "user_message": self.user_message,
                "details": self.details,
                "request_id": self.request_id,
                "timestamp": self.timestamp
            }
        }


def _request_id(request: Request) -> str:
    return getattr(request.state, 'request_id', None) or str(uuid.uuid4())


async def custom_exception_handler(request: Request, exc: BaseCustomException):
    """Handler for custom exceptions."""
    if exc.status_code >= 500:
        logger.error(f"Server error on {request.method} {request.url.path}: {exc.detail}")
    else:
        logger.warning(f"Client error on {request.method} {request.url.path}: {exc.detail}")

    error_response = ErrorResponse(
        error_code=exc.error_code,
        message=exc.detail,
        user_message=exc.user_message,
        details=getattr(exc, 'field_errors', {}),
        request_id=_request_id(request)
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=error_response.to_dict(),
        headers=exc.headers
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handler for validation exceptions."""
    field_errors = {}
    for error in exc.errors():
        field_name = ".".join(str(loc) for loc in error["loc"])
        field_errors[field_name] = error["msg"]

    error_response = ErrorResponse(
        error_code="VAL_002",
        message="Request validation failed",
        user_message="Please check your input and try again",
        details={"field_errors": field_errors},
        request_id=_request_id(request)
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_response.to_dict()
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    """Last resort for errors no route converted."""
    request_id = _request_id(request)
    logger.error(
        f"Unexpected error on {request.method} {request.url.path}: {exc}",
        extra={"request_id": request_id},
        exc_info=True
    )

    error_response = ErrorResponse(
        error_code="SYS_001",
        message="Internal server error",
        user_message="An unexpected error occurred. Please try again later",
        request_id=request_id
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response.to_dict()
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(BaseCustomException, custom_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
