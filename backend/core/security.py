from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

import jwt
from werkzeug.security import check_password_hash, generate_password_hash

from core.config import settings


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return check_password_hash(password_hash, password)


def create_access_token(user_id: UUID, email: str, expires_minutes: Optional[int] = None) -> str:
    """Issue a signed bearer token for the given user"""
    expires_delta = timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": str(user_id),
        "email": email,
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify a bearer token.

    Raises jwt.InvalidTokenError (or a subclass) when the token is malformed,
    badly signed or expired.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
