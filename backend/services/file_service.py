import logging
from sqlalchemy.orm import Session
from typing import Iterator, Optional, Tuple
from uuid import UUID

from models.file import File
from core.config import settings
from exceptions.exceptions import ConflictException, NotFoundException, ValidationException
from services.base import BaseService
from services.folder_service import FolderService
from services.storage_service import BlobNotFoundError, ContentStore
from utils.file_helpers import (
    MAX_NAME_LENGTH,
    base_mime_type,
    format_file_size,
    has_control_characters,
    numbered_name,
)

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


class FileService(BaseService):
    def __init__(self, db: Session, store: Optional[ContentStore] = None):
        super().__init__(db, store)
        self.folder_service = FolderService(db, self.store)

    def _clean_name(self, name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationException("File name is required")
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationException(f"File name cannot exceed {MAX_NAME_LENGTH} characters")
        if has_control_characters(name):
            raise ValidationException("File name cannot contain control characters")
        return name

    def _name_taken(self, user_id: UUID, folder_id: UUID, name: str, exclude_id: Optional[UUID] = None) -> bool:
        query = self.db.query(File).filter(
            File.user_id == user_id,
            File.folder_id == folder_id,
            File.name == name
        )
        if exclude_id is not None:
            query = query.filter(File.id != exclude_id)
        return query.first() is not None

    def _available_name(self, user_id: UUID, folder_id: UUID, filename: str) -> str:
        """First free name in the folder: "a.pdf", then "a (1).pdf", "a (2).pdf", ..."""
        name = filename
        counter = 1
        while self._name_taken(user_id, folder_id, name):
            name = numbered_name(filename, counter)
            counter += 1
        return name

    def _validate_upload(self, file_content: bytes, mime_type: str):
        if mime_type not in settings.ALLOWED_FILE_TYPES:
            raise ValidationException(f"File type {mime_type} is not allowed")
        if not file_content:
            raise ValidationException("No file uploaded")
        if len(file_content) > settings.MAX_FILE_SIZE:
            raise ValidationException(
                f"File size exceeds maximum allowed size of {format_file_size(settings.MAX_FILE_SIZE)}"
            )

    def upload_file(
        self,
        user_id: UUID,
        file_content: bytes,
        filename: str,
        mime_type: Optional[str] = None,
        folder_id: Optional[UUID] = None
    ) -> File:
        """
        Store the content of an upload and save its metadata.

        Args:
            user_id: ID of the user uploading the file
            file_content: Binary content of the file
            filename: Original filename
            mime_type: MIME type of the file
            folder_id: Optional folder ID (defaults to the user's root)

        Returns:
            File object with metadata
        """
        original_name = self._clean_name(filename)
        mime_type = base_mime_type(mime_type or DEFAULT_MIME_TYPE) or DEFAULT_MIME_TYPE
        self._validate_upload(file_content, mime_type)

        folder = self.folder_service.resolve_folder(user_id, folder_id)
        name = self._available_name(user_id, folder.id, original_name)

        storage_key = self.store.put(file_content, user_id, original_name, mime_type)
        logger.info("Stored upload %s for user %s at %s", original_name, user_id, storage_key)

        try:
            file_record = File(
                user_id=user_id,
                folder_id=folder.id,
                name=name,
                original_name=original_name,
                size=len(file_content),
                mime=mime_type,
                storage_key=storage_key
            )
            self.db.add(file_record)
            self._commit("A file with this name already exists in this folder")
        except Exception:
            logger.warning("Rolling back stored content %s", storage_key)
            self._delete_blob(storage_key)
            raise

        self.db.refresh(file_record)
        return file_record

    def get_file_by_id(self, file_id: UUID, user_id: UUID) -> Optional[File]:
        """Get a file by ID, ensuring it belongs to the user"""
        return self.db.query(File).filter(
            File.id == file_id,
            File.user_id == user_id
        ).first()

    def get_owned_file(self, file_id: UUID, user_id: UUID) -> File:
        file_record = self.get_file_by_id(file_id, user_id)
        if not file_record:
            raise NotFoundException("File not found")
        return file_record

    def get_user_files(self, user_id: UUID, folder_id: Optional[UUID] = None) -> list[File]:
        """Files directly inside a folder (the user's root by default), ordered by name"""
        folder = self.folder_service.resolve_folder(user_id, folder_id)
        return self.db.query(File).filter(
            File.user_id == user_id,
            File.folder_id == folder.id
        ).order_by(File.name.asc()).all()

    def search_files(self, user_id: UUID, query: str, folder_id: Optional[UUID] = None) -> list[File]:
        """Case-insensitive substring search on file names"""
        query = (query or "").strip()
        if not query:
            raise ValidationException("Search query is required")

        escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        search = self.db.query(File).filter(
            File.user_id == user_id,
            File.name.ilike(f"%{escaped}%", escape="\\")
        )

        if folder_id is not None:
            folder = self.folder_service.get_owned_folder(folder_id, user_id)
            search = search.filter(File.folder_id == folder.id)

        return search.order_by(File.name.asc()).limit(settings.SEARCH_RESULT_LIMIT).all()

    def rename_file(self, file_id: UUID, user_id: UUID, name: str) -> File:
        name = self._clean_name(name)
        file_record = self.get_owned_file(file_id, user_id)

        if self._name_taken(user_id, file_record.folder_id, name, exclude_id=file_record.id):
            raise ConflictException("A file with this name already exists in this folder")

        file_record.name = name
        self._commit("A file with this name already exists in this folder")
        self.db.refresh(file_record)
        return file_record

    def move_file(self, file_id: UUID, user_id: UUID, folder_id: Optional[UUID]) -> File:
        """
        Move a file to a different folder.

        Args:
            file_id: ID of the file to move
            user_id: ID of the user (for authorization)
            folder_id: Destination folder ID

        Returns:
            Updated File object
        """
        file_record = self.get_owned_file(file_id, user_id)

        if folder_id is None:
            raise ValidationException("Destination folder ID is required")

        folder = self.folder_service.get_owned_folder(folder_id, user_id, "Destination folder not found")

        if self._name_taken(user_id, folder.id, file_record.name, exclude_id=file_record.id):
            raise ConflictException("A file with this name already exists in the destination folder")

        file_record.folder_id = folder.id
        self._commit("A file with this name already exists in the destination folder")
        self.db.refresh(file_record)
        return file_record

    def delete_file(self, file_id: UUID, user_id: UUID):
        """Delete the file record and its content; missing content is only logged"""
        file_record = self.get_owned_file(file_id, user_id)
        storage_key = file_record.storage_key

        self.db.delete(file_record)
        self._commit("File could not be deleted")

        self._delete_blob(storage_key)

    def open_file(self, file_id: UUID, user_id: UUID) -> Tuple[File, Iterator[bytes]]:
        """Resolve a file and open its content for streaming"""
        file_record = self.get_owned_file(file_id, user_id)
        try:
            stream = self.store.open(file_record.storage_key)
        except BlobNotFoundError:
            logger.error("Content for file %s is missing from storage", file_id)
            raise NotFoundException("File not found on disk")
        return file_record, stream
