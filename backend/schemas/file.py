from pydantic import BaseModel, Field, computed_field
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from utils import file_helpers


class FileResponse(BaseModel):
    id: UUID
    user_id: UUID
    folder_id: UUID
    name: str
    original_name: str
    size: int
    mime: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @computed_field
    @property
    def formatted_size(self) -> str:
        return file_helpers.format_file_size(self.size)

    @computed_field
    @property
    def is_image(self) -> bool:
        return file_helpers.is_image(self.mime)

    @computed_field
    @property
    def is_pdf(self) -> bool:
        return file_helpers.is_pdf(self.mime)


class FileRename(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="New file name")

    class Config:
        json_schema_extra = {
            "example": {
                "name": "renamed_file.pdf"
            }
        }


class FileMove(BaseModel):
    folder_id: Optional[UUID] = None

    class Config:
        json_schema_extra = {
            "example": {
                "folder_id": "550e8400-e29b-41d4-a716-446655440000"
            }
        }


class FileSearchResponse(BaseModel):
    files: List[FileResponse]
    count: int
