"""
Custom exceptions module for the Study Overlay API.
"""

from .custom_exceptions import (
    BaseCustomException,
    AuthenticationError,
    ValidationError,
    NotFoundError,
    CodeExhaustionError,
    DatabaseError,
)

__all__ = [
    "BaseCustomException",
    "AuthenticationError",
    "ValidationError",
    "NotFoundError",
    "CodeExhaustionError",
    "DatabaseError",
]
