"""
Custom exception classes for the application.

Provides standardized HTTP exceptions for common error cases.
"""

from fastapi import HTTPException, status


class NotFoundException(HTTPException):
    """Exception raised when a requested resource is not found."""

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
        )


class BadRequestException(HTTPException):
    """Exception raised for invalid request data."""

    def __init__(self, detail: str = "Bad request"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )


class ReservedKeyConflictException(HTTPException):
    """Exception raised when an update touches reserved metadata keys."""

    def __init__(self, rejected_keys: list[str]):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "Reserved metadata keys cannot be changed",
                "rejectedKeys": rejected_keys,
            },
        )


class ConflictException(HTTPException):
    """Exception raised when a resource already exists."""

    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
        )


class StorageUnavailableException(HTTPException):
    """Exception raised when the object store fails a required operation."""

    def __init__(self, detail: str = "Object storage request failed"):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=detail,
        )
