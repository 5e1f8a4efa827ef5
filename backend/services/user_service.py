import logging
from sqlalchemy.orm import Session
from typing import Optional, Tuple
from uuid import UUID

from core.security import hash_password, verify_password
from exceptions.exceptions import AuthenticationException, ConflictException, NotFoundException
from models.folder import Folder
from models.user import User
from services.base import BaseService
from services.folder_service import FolderService
from services.storage_service import ContentStore

logger = logging.getLogger(__name__)


class UserService(BaseService):
    def __init__(self, db: Session, store: Optional[ContentStore] = None):
        super().__init__(db, store)
        self.folder_service = FolderService(db, self.store)

    def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.lower()).first()

    def register(self, email: str, password: str) -> Tuple[User, Folder]:
        """
        Create a user together with their root folder.

        Both rows are committed in one transaction so a user never exists
        without a root folder.
        """
        email = email.lower()
        if self.get_user_by_email(email):
            raise ConflictException("User with this email already exists")

        user = User(email=email, password_hash=hash_password(password))
        self.db.add(user)
        try:
            self.db.flush()
            root = self.folder_service.create_root_folder(user.id)
        except Exception:
            self.db.rollback()
            raise
        self._commit("User with this email already exists")
        self.db.refresh(user)
        self.db.refresh(root)

        logger.info("Registered user %s with root folder %s", user.id, root.id)
        return user, root

    def authenticate(self, email: str, password: str) -> User:
        user = self.get_user_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            raise AuthenticationException("Invalid credentials")
        return user

    def update_email(self, user_id: UUID, email: str) -> User:
        user = self.get_user_by_id(user_id)
        if not user:
            raise NotFoundException("User not found")

        email = email.lower()
        existing = self.get_user_by_email(email)
        if existing and existing.id != user.id:
            raise ConflictException("Email already taken")

        user.email = email
        self._commit("Email already taken")
        self.db.refresh(user)
        return user
