from .exceptions import (
    AuthenticationException,
    ConflictException,
    DriveException,
    NotFoundException,
    ReferenceException,
    ValidationException,
)

__all__ = [
    "AuthenticationException",
    "ConflictException",
    "DriveException",
    "NotFoundException",
    "ReferenceException",
    "ValidationException",
]
