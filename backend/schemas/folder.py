from pydantic import AliasChoices, BaseModel, Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from schemas.file import FileResponse


class FolderCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Folder name")
    parent_folder_id: Optional[UUID] = Field(None, description="Parent folder ID (defaults to the root folder)")

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Documents",
                "parent_folder_id": None
            }
        }


class FolderRename(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="New folder name")

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Updated Documents"
            }
        }


class FolderMove(BaseModel):
    parent_folder_id: Optional[UUID] = Field(None, description="New parent folder ID")

    class Config:
        json_schema_extra = {
            "example": {
                "parent_folder_id": "550e8400-e29b-41d4-a716-446655440000"
            }
        }


class FolderResponse(BaseModel):
    id: UUID
    user_id: UUID
    name: str
    parent_folder_id: Optional[UUID]
    path: str
    is_root: bool
    children: List[UUID] = Field(
        default_factory=list,
        validation_alias=AliasChoices("children_ids", "children")
    )
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class FolderContentsResponse(BaseModel):
    """Everything directly inside one folder"""
    folders: List[FolderResponse]
    files: List[FileResponse]
    current_folder: FolderResponse


class BreadcrumbItem(BaseModel):
    id: UUID
    name: str
    path: str


class FolderTreeResponse(BaseModel):
    """Folder tree structure for hierarchical display"""
    id: UUID
    name: str
    path: str
    parent_folder_id: Optional[UUID]
    is_root: bool
    files_count: int = 0
    children: List["FolderTreeResponse"] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
