from typing import Optional

from fastapi import HTTPException, status


class DriveException(HTTPException):
    """Base class for errors raised by the drive services.

    Subclasses pin the HTTP status so routers can let these propagate and
    FastAPI renders them as ``{"detail": ...}``.
    """

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str, headers: Optional[dict] = None):
        super().__init__(status_code=self.status_code, detail=detail, headers=headers)


class NotFoundException(DriveException):
    """Entity is absent or not owned by the caller (both look the same)"""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DriveException):
    """A uniqueness rule was violated, e.g. a duplicate sibling name"""

    status_code = status.HTTP_409_CONFLICT


class ValidationException(DriveException):
    """Malformed input, disallowed upload, or an illegal tree operation"""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationException(DriveException):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class ReferenceException(DriveException):
    """An internal invariant is broken, e.g. a folder points at a missing parent.

    The message is kept for logs only; clients get a generic 500.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        self.message = message
        super().__init__("Internal server error")

    def __str__(self) -> str:
        return self.message
