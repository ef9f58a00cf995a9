"""
Custom exception classes for the Study Overlay API.
"""
from typing import Any, Dict, Optional
from fastapi import HTTPException, status


class BaseCustomException(HTTPException):
    """Base class for all custom exceptions."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: str,
        headers: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code
        self.user_message = user_message or detail


class AuthenticationError(BaseCustomException):
    """Raised when the caller has no valid identity."""

    def __init__(
        self,
        detail: str = "Unauthorized",
        error_code: str = "AUTH_001",
        user_message: str = "Please log in to access this resource"
    ):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code=error_code,
            user_message=user_message,
            headers={"WWW-Authenticate": "Bearer"}
        )


class ValidationError(BaseCustomException):
    """Raised when required input is missing or malformed."""

    def __init__(
        self,
        detail: str = "Validation failed",
        error_code: str = "VAL_001",
        user_message: str = "Please check your input and try again",
        field_errors: Optional[Dict[str, str]] = None
    ):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code=error_code,
            user_message=user_message
        )
        self.field_errors = field_errors or {}


class NotFoundError(BaseCustomException):
    """Raised when a room (or other keyed record) does not exist."""

    def __init__(
        self,
        detail: str = "Resource not found",
        error_code: str = "NF_001",
        user_message: Optional[str] = None
    ):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code=error_code,
            user_message=user_message
        )


class CodeExhaustionError(BaseCustomException):
    """Raised when no free invite code was found within the retry budget."""

    def __init__(
        self,
        detail: str = "Failed to generate unique invite code",
        error_code: str = "ROOM_001",
        user_message: str = "Could not create the room right now. Please try again",
        attempts: Optional[int] = None
    ):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            error_code=error_code,
            user_message=user_message
        )
        self.attempts = attempts


class DatabaseError(BaseCustomException):
    """Raised when database operations fail."""

    def __init__(
        self,
        detail: str = "Database operation failed",
        error_code: str = "DB_001",
        user_message: str = "A database error occurred. Please try again"
    ):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            error_code=error_code,
            user_message=user_message
        )
