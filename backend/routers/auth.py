import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from core.security import create_access_token
from database import get_db
from dependencies.auth import get_current_active_user
from models.user import User
from schemas.user import RegisterResponse, TokenResponse, UserCreate, UserLogin, UserResponse, UserUpdate
from services.storage_service import ContentStore, get_content_store
from services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    db: Session = Depends(get_db),
    store: ContentStore = Depends(get_content_store)
):
    """
    Create an account and its root folder.

    - **email**: Unique email address
    - **password**: At least 6 characters
    """
    user_service = UserService(db, store)
    user, root_folder = user_service.register(user_data.email, user_data.password)
    return {
        "access_token": create_access_token(user.id, user.email),
        "token_type": "bearer",
        "user": user,
        "root_folder": root_folder
    }


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    db: Session = Depends(get_db),
    store: ContentStore = Depends(get_content_store)
):
    """Exchange email and password for a bearer token."""
    user_service = UserService(db, store)
    user = user_service.authenticate(credentials.email, credentials.password)
    logger.info("User %s logged in", user.id)
    return {
        "access_token": create_access_token(user.id, user.email),
        "token_type": "bearer",
        "user": user
    }


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_active_user)):
    return current_user


@router.put("/me", response_model=UserResponse)
async def update_me(
    user_data: UserUpdate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
    store: ContentStore = Depends(get_content_store)
):
    """Change the email address of the current user."""
    user_service = UserService(db, store)
    return user_service.update_email(current_user.id, user_data.email)
