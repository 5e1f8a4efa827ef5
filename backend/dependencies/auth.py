from typing import Optional
from uuid import UUID

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from core.security import decode_access_token
from database import get_db
from exceptions.exceptions import AuthenticationException
from models.user import User

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> User:
    """Resolve the user from the bearer token on the request"""
    if credentials is None:
        raise AuthenticationException("Access token required")

    try:
        payload = decode_access_token(credentials.credentials)
        user_id = UUID(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise AuthenticationException("Invalid token")

    user = db.get(User, user_id)
    if user is None:
        raise AuthenticationException("Invalid token")
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    return current_user
