from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import Optional, List
from uuid import UUID

from database import get_db
from dependencies.auth import get_current_active_user
from models.user import User
from schemas.folder import (
    BreadcrumbItem,
    FolderContentsResponse,
    FolderCreate,
    FolderMove,
    FolderRename,
    FolderResponse,
    FolderTreeResponse,
)
from services.folder_service import FolderService
from services.storage_service import ContentStore, get_content_store

router = APIRouter(prefix="/folders", tags=["folders"])


def get_folder_service(
    db: Session = Depends(get_db),
    store: ContentStore = Depends(get_content_store)
) -> FolderService:
    return FolderService(db, store)


@router.get("", response_model=FolderContentsResponse)
async def get_root_contents(
    current_user: User = Depends(get_current_active_user),
    folder_service: FolderService = Depends(get_folder_service)
):
    """Subfolders and files directly inside the root folder."""
    return folder_service.get_folder_contents(current_user.id)


@router.post("", response_model=FolderResponse, status_code=status.HTTP_201_CREATED)
async def create_folder(
    folder_data: FolderCreate,
    current_user: User = Depends(get_current_active_user),
    folder_service: FolderService = Depends(get_folder_service)
):
    """
    Create a new folder.

    - **name**: Folder name (must be unique within the parent folder)
    - **parent_folder_id**: Optional parent folder ID (root when omitted)
    """
    return folder_service.create_folder(
        user_id=current_user.id,
        name=folder_data.name,
        parent_folder_id=folder_data.parent_folder_id
    )


@router.get("/breadcrumbs", response_model=List[BreadcrumbItem])
async def get_breadcrumbs(
    folder_id: Optional[UUID] = None,
    current_user: User = Depends(get_current_active_user),
    folder_service: FolderService = Depends(get_folder_service)
):
    """Trail from the root folder down to the given folder."""
    return folder_service.get_breadcrumbs(current_user.id, folder_id)


@router.get("/tree", response_model=List[FolderTreeResponse])
async def get_folder_tree(
    folder_id: Optional[UUID] = None,
    current_user: User = Depends(get_current_active_user),
    folder_service: FolderService = Depends(get_folder_service)
):
    """
    Get the folder tree structure.

    - **folder_id**: Optional folder ID to start from (root when omitted)
    """
    return folder_service.get_folder_tree(current_user.id, folder_id)


@router.get("/{folder_id}", response_model=FolderContentsResponse)
async def get_folder_contents(
    folder_id: UUID,
    current_user: User = Depends(get_current_active_user),
    folder_service: FolderService = Depends(get_folder_service)
):
    """Subfolders and files directly inside a folder."""
    return folder_service.get_folder_contents(current_user.id, folder_id)


@router.put("/{folder_id}/rename", response_model=FolderResponse)
async def rename_folder(
    folder_id: UUID,
    folder_data: FolderRename,
    current_user: User = Depends(get_current_active_user),
    folder_service: FolderService = Depends(get_folder_service)
):
    return folder_service.rename_folder(folder_id, current_user.id, folder_data.name)


@router.put("/{folder_id}/move", response_model=FolderResponse)
async def move_folder(
    folder_id: UUID,
    move_data: FolderMove,
    current_user: User = Depends(get_current_active_user),
    folder_service: FolderService = Depends(get_folder_service)
):
    """
    Move a folder to a different parent folder.

    - **parent_folder_id**: Destination folder ID
    """
    return folder_service.move_folder(folder_id, current_user.id, move_data.parent_folder_id)


@router.delete("/{folder_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_folder(
    folder_id: UUID,
    current_user: User = Depends(get_current_active_user),
    folder_service: FolderService = Depends(get_folder_service)
):
    """Delete a folder with all of its subfolders and files."""
    folder_service.delete_folder(folder_id, current_user.id)
    return None
