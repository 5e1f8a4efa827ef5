import logging
from collections import defaultdict, deque
from sqlalchemy.orm import Session
from sqlalchemy import and_, func
from typing import Optional, List
from uuid import UUID

from core.config import settings
from models.folder import Folder
from models.file import File
from exceptions.exceptions import (
    ConflictException,
    NotFoundException,
    ReferenceException,
    ValidationException,
)
from services.base import BaseService
from services.storage_service import ContentStore
from utils.file_helpers import MAX_NAME_LENGTH, has_control_characters

logger = logging.getLogger(__name__)


class FolderService(BaseService):
    def __init__(self, db: Session, store: Optional[ContentStore] = None):
        super().__init__(db, store)

    def _clean_name(self, name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationException("Folder name is required")
        if "/" in name:
            raise ValidationException("Folder name cannot contain '/'")
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationException(f"Folder name cannot exceed {MAX_NAME_LENGTH} characters")
        if has_control_characters(name):
            raise ValidationException("Folder name cannot contain control characters")
        return name

    def _build_path(self, folder: Folder) -> str:
        """Build the materialized path of a folder from its parent's path"""
        if folder.is_root or folder.parent_folder_id is None:
            return f"/{folder.name}"

        parent = self.db.get(Folder, folder.parent_folder_id)
        if parent is None:
            raise ReferenceException(
                f"Folder {folder.id} references missing parent {folder.parent_folder_id}"
            )
        return f"{parent.path}/{folder.name}"

    def _update_path(self, folder: Folder):
        """Update the path for a folder and all its descendants"""
        folder.path = self._build_path(folder)

        for parent, child in self._walk_descendants(folder):
            child.path = f"{parent.path}/{child.name}"

    def _walk_descendants(self, folder: Folder):
        """
        Breadth-first walk below ``folder`` yielding (parent, child) pairs.

        Only children owned by the same user are followed, each folder is
        visited once, and the walk stops with a ValidationException once
        MAX_TREE_NODES folders have been produced.
        """
        visited = {folder.id}
        queue = deque([folder])
        produced = 0

        while queue:
            current = queue.popleft()
            children = self.db.query(Folder).filter(
                Folder.parent_folder_id == current.id,
                Folder.user_id == folder.user_id
            ).all()

            for child in children:
                if child.id in visited:
                    logger.error("Cycle detected below folder %s at %s", folder.id, child.id)
                    continue
                visited.add(child.id)
                produced += 1
                if produced > settings.MAX_TREE_NODES:
                    raise ValidationException("Folder tree is too large to process")
                yield current, child
                queue.append(child)

    def _name_taken(
        self,
        user_id: UUID,
        parent_folder_id: Optional[UUID],
        name: str,
        exclude_id: Optional[UUID] = None
    ) -> bool:
        query = self.db.query(Folder).filter(
            and_(
                Folder.user_id == user_id,
                Folder.name == name,
                Folder.parent_folder_id == parent_folder_id
            )
        )
        if exclude_id is not None:
            query = query.filter(Folder.id != exclude_id)
        return query.first() is not None

    def get_folder_by_id(self, folder_id: UUID, user_id: UUID) -> Optional[Folder]:
        """Get a folder by ID, ensuring it belongs to the user"""
        return self.db.query(Folder).filter(
            Folder.id == folder_id,
            Folder.user_id == user_id
        ).first()

    def get_root_folder(self, user_id: UUID) -> Optional[Folder]:
        return self.db.query(Folder).filter(
            Folder.user_id == user_id,
            Folder.is_root.is_(True)
        ).first()

    def get_owned_folder(self, folder_id: UUID, user_id: UUID, message: str = "Folder not found") -> Folder:
        folder = self.get_folder_by_id(folder_id, user_id)
        if not folder:
            raise NotFoundException(message)
        return folder

    def resolve_folder(self, user_id: UUID, folder_id: Optional[UUID] = None) -> Folder:
        """Return the requested folder, or the user's root folder when none is given"""
        if folder_id is None:
            root = self.get_root_folder(user_id)
            if not root:
                raise NotFoundException("Root folder not found")
            return root
        return self.get_owned_folder(folder_id, user_id)

    def create_root_folder(self, user_id: UUID) -> Folder:
        """
        Add the root folder for a new user to the session.

        The caller owns the transaction (registration commits user and root
        together).
        """
        name = settings.ROOT_FOLDER_NAME
        folder = Folder(
            user_id=user_id,
            name=name,
            parent_folder_id=None,
            is_root=True,
            path=f"/{name}"
        )
        self.db.add(folder)
        self.db.flush()
        return folder

    def create_folder(self, user_id: UUID, name: str, parent_folder_id: Optional[UUID] = None) -> Folder:
        """
        Create a new folder.

        Args:
            user_id: ID of the user creating the folder
            name: Name of the folder
            parent_folder_id: Optional parent folder ID (defaults to the user's root)

        Returns:
            Created Folder object
        """
        name = self._clean_name(name)
        parent = self.resolve_folder(user_id, parent_folder_id)

        if self._name_taken(user_id, parent.id, name):
            raise ConflictException("A folder with this name already exists in this location")

        folder = Folder(
            user_id=user_id,
            name=name,
            parent_folder_id=parent.id,
            is_root=False
        )
        folder.path = self._build_path(folder)

        self.db.add(folder)
        self._commit("A folder with this name already exists in this location")
        self.db.refresh(folder)

        logger.info("Created folder %s at %s", folder.id, folder.path)
        return folder

    def rename_folder(self, folder_id: UUID, user_id: UUID, name: str) -> Folder:
        """
        Rename a folder and refresh the paths below it.

        Args:
            folder_id: ID of the folder to rename
            user_id: ID of the user (for authorization)
            name: New folder name

        Returns:
            Updated Folder object
        """
        name = self._clean_name(name)
        folder = self.get_owned_folder(folder_id, user_id)

        if self._name_taken(user_id, folder.parent_folder_id, name, exclude_id=folder.id):
            raise ConflictException("A folder with this name already exists in this location")

        folder.name = name
        try:
            self._update_path(folder)
        except Exception:
            self.db.rollback()
            raise
        self._commit("A folder with this name already exists in this location")
        self.db.refresh(folder)

        return folder

    def move_folder(self, folder_id: UUID, user_id: UUID, parent_folder_id: Optional[UUID]) -> Folder:
        """
        Move a folder to a different parent folder.

        Args:
            folder_id: ID of the folder to move
            user_id: ID of the user (for authorization)
            parent_folder_id: Destination parent folder ID

        Returns:
            Updated Folder object
        """
        folder = self.get_owned_folder(folder_id, user_id)

        if parent_folder_id is None:
            raise ValidationException("Destination folder is required")

        new_parent = self.get_owned_folder(parent_folder_id, user_id, "Destination folder not found")

        # Prevent moving folder into itself or its descendants
        descendant_ids = {descendant.id for descendant in self.get_all_descendants(folder)}
        if new_parent.id == folder.id or new_parent.id in descendant_ids:
            raise ValidationException("Cannot move folder into itself or its subfolders")

        if self._name_taken(user_id, new_parent.id, folder.name, exclude_id=folder.id):
            raise ConflictException(f"Folder '{folder.name}' already exists in {new_parent.name}")

        old_parent_id = folder.parent_folder_id
        folder.parent_folder_id = new_parent.id
        try:
            self._update_path(folder)
        except Exception:
            self.db.rollback()
            raise
        self._commit(f"Folder '{folder.name}' already exists in {new_parent.name}")
        self.db.refresh(folder)

        logger.info("Moved folder %s from %s to %s", folder.id, old_parent_id, new_parent.id)
        return folder

    def get_all_descendants(self, folder: Folder) -> List[Folder]:
        """All folders strictly below ``folder``, in breadth-first order"""
        return [child for _, child in self._walk_descendants(folder)]

    def delete_folder(self, folder_id: UUID, user_id: UUID) -> dict:
        """
        Delete a folder together with every subfolder and file below it.

        Records are removed in one transaction; content blobs are removed
        afterwards and a missing blob only produces a warning.

        Args:
            folder_id: ID of the folder to delete
            user_id: ID of the user (for authorization)

        Returns:
            Counts of deleted folders and files
        """
        folder = self.get_owned_folder(folder_id, user_id)

        if folder.is_root:
            raise ValidationException("Cannot delete root folder")

        descendants = self.get_all_descendants(folder)
        folder_ids = [folder.id] + [descendant.id for descendant in descendants]

        files = self.db.query(File).filter(
            File.user_id == user_id,
            File.folder_id.in_(folder_ids)
        ).all()
        storage_keys = [file.storage_key for file in files]

        try:
            for file in files:
                self.db.delete(file)
            self.db.flush()

            # Deepest folders first
            for descendant in reversed(descendants):
                self.db.delete(descendant)
            self.db.delete(folder)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Failed to delete folder %s", folder_id)
            raise

        for storage_key in storage_keys:
            self._delete_blob(storage_key)

        logger.info(
            "Deleted folder %s with %d subfolder(s) and %d file(s)",
            folder_id, len(descendants), len(files)
        )
        return {"folders": len(folder_ids), "files": len(files)}

    def get_breadcrumbs(self, user_id: UUID, folder_id: Optional[UUID] = None) -> List[dict]:
        """
        Trail of (id, name, path) from the root down to the folder.

        A parent link that no longer resolves ends the trail early.
        """
        current = self.resolve_folder(user_id, folder_id)

        breadcrumbs = []
        visited = set()
        while current is not None:
            if current.id in visited:
                raise ReferenceException(f"Cycle in folder ancestry at {current.id}")
            visited.add(current.id)
            breadcrumbs.append({"id": current.id, "name": current.name, "path": current.path})

            if current.parent_folder_id is None:
                break
            parent = self.get_folder_by_id(current.parent_folder_id, user_id)
            if parent is None:
                logger.warning(
                    "Folder %s references missing parent %s", current.id, current.parent_folder_id
                )
            current = parent

        breadcrumbs.reverse()
        return breadcrumbs

    def get_folder_tree(self, user_id: UUID, folder_id: Optional[UUID] = None) -> List[dict]:
        """
        Get folder tree structure with children embedded.

        Args:
            user_id: ID of the user
            folder_id: Optional folder ID to start from (None for root)

        Returns:
            One-element list holding the nested folder dictionary
        """
        start = self.resolve_folder(user_id, folder_id)

        folders_by_parent = defaultdict(list)
        for folder in self.db.query(Folder).filter(Folder.user_id == user_id).all():
            if folder.parent_folder_id is not None:
                folders_by_parent[folder.parent_folder_id].append(folder)

        files_count = dict(
            self.db.query(File.folder_id, func.count(File.id))
            .filter(File.user_id == user_id)
            .group_by(File.folder_id)
            .all()
        )

        def to_node(folder: Folder) -> dict:
            return {
                "id": folder.id,
                "name": folder.name,
                "path": folder.path,
                "parent_folder_id": folder.parent_folder_id,
                "is_root": folder.is_root,
                "files_count": files_count.get(folder.id, 0),
                "children": [],
                "created_at": folder.created_at,
                "updated_at": folder.updated_at
            }

        root_node = to_node(start)
        visited = {start.id}
        queue = deque([(start, root_node)])
        while queue:
            folder, node = queue.popleft()
            for child in sorted(folders_by_parent[folder.id], key=lambda f: f.name):
                if child.id in visited:
                    continue
                visited.add(child.id)
                child_node = to_node(child)
                node["children"].append(child_node)
                queue.append((child, child_node))

        return [root_node]

    def get_folder_contents(self, user_id: UUID, folder_id: Optional[UUID] = None) -> dict:
        """Subfolders and files directly inside a folder (root by default)"""
        current = self.resolve_folder(user_id, folder_id)

        folders = self.db.query(Folder).filter(
            Folder.user_id == user_id,
            Folder.parent_folder_id == current.id
        ).order_by(Folder.name.asc()).all()

        files = self.db.query(File).filter(
            File.user_id == user_id,
            File.folder_id == current.id
        ).order_by(File.name.asc()).all()

        return {"folders": folders, "files": files, "current_folder": current}
