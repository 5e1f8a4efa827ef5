from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from uuid import UUID

from schemas.folder import FolderResponse


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, description="Account password")

    class Config:
        json_schema_extra = {
            "example": {
                "email": "jane@example.com",
                "password": "secret123"
            }
        }


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserUpdate(BaseModel):
    email: EmailStr


class UserResponse(BaseModel):
    id: UUID
    email: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class RegisterResponse(TokenResponse):
    root_folder: FolderResponse
