import logging
from fastapi import APIRouter, Depends, UploadFile, File, Form, status, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
from typing import Optional
from urllib.parse import quote
from uuid import UUID

from core.config import settings
from database import get_db
from dependencies.auth import get_current_active_user
from exceptions.exceptions import ValidationException
from models.user import User
from schemas.file import FileMove, FileRename, FileResponse, FileSearchResponse
from services.file_service import FileService
from services.storage_service import ContentStore, get_content_store
from utils.file_helpers import CONTROL_CHARACTERS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/files", tags=["files"])

UPLOAD_READ_CHUNK = 1024 * 1024


def get_file_service(
    db: Session = Depends(get_db),
    store: ContentStore = Depends(get_content_store)
) -> FileService:
    return FileService(db, store)


def content_disposition(filename: str) -> str:
    """Attachment header value; non-ASCII names use the RFC 5987 form"""
    filename = CONTROL_CHARACTERS.sub("", filename)
    try:
        filename.encode("ascii")
    except UnicodeEncodeError:
        fallback = filename.encode("ascii", "ignore").decode("ascii").replace('"', "") or "download"
        return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"
    return 'attachment; filename="{}"'.format(filename.replace('"', '\\"'))


async def read_upload(file: UploadFile, max_size: int) -> bytes:
    """Read at most ``max_size + 1`` bytes of an upload"""
    chunks = []
    remaining = max_size + 1
    while remaining > 0:
        chunk = await file.read(min(UPLOAD_READ_CHUNK, remaining))
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


@router.post("/upload", response_model=FileResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    folder_id: Optional[UUID] = Form(None),
    current_user: User = Depends(get_current_active_user),
    file_service: FileService = Depends(get_file_service)
):
    """
    Upload a file.

    - **file**: The file to upload
    - **folder_id**: Optional folder ID (root when omitted)

    A name already used in the folder gets a " (n)" suffix.
    """
    try:
        file_content = await read_upload(file, settings.MAX_FILE_SIZE)
    except Exception as e:
        logger.warning("Error reading upload %s: %s", file.filename, e)
        raise ValidationException("Error reading file")

    return file_service.upload_file(
        user_id=current_user.id,
        file_content=file_content,
        filename=file.filename,
        mime_type=file.content_type,
        folder_id=folder_id
    )


@router.get("", response_model=list[FileResponse])
async def list_files(
    folder_id: Optional[UUID] = None,
    current_user: User = Depends(get_current_active_user),
    file_service: FileService = Depends(get_file_service)
):
    """
    List the files of a folder.

    - **folder_id**: Optional folder ID (root when omitted)
    """
    return file_service.get_user_files(user_id=current_user.id, folder_id=folder_id)


@router.get("/search", response_model=FileSearchResponse)
async def search_files(
    query: str = Query(..., description="Case-insensitive part of the file name"),
    folder_id: Optional[UUID] = None,
    current_user: User = Depends(get_current_active_user),
    file_service: FileService = Depends(get_file_service)
):
    files = file_service.search_files(current_user.id, query, folder_id)
    return {"files": files, "count": len(files)}


@router.get("/{file_id}", response_model=FileResponse)
async def get_file(
    file_id: UUID,
    current_user: User = Depends(get_current_active_user),
    file_service: FileService = Depends(get_file_service)
):
    """Get file metadata by ID."""
    return file_service.get_owned_file(file_id, current_user.id)


@router.get("/{file_id}/download")
async def download_file(
    file_id: UUID,
    current_user: User = Depends(get_current_active_user),
    file_service: FileService = Depends(get_file_service)
):
    """Stream the file content as an attachment."""
    file_record, stream = file_service.open_file(file_id, current_user.id)
    return StreamingResponse(
        stream,
        media_type=file_record.mime,
        headers={
            "Content-Disposition": content_disposition(file_record.name),
            "Content-Length": str(file_record.size)
        }
    )


@router.put("/{file_id}/rename", response_model=FileResponse)
async def rename_file(
    file_id: UUID,
    file_data: FileRename,
    current_user: User = Depends(get_current_active_user),
    file_service: FileService = Depends(get_file_service)
):
    return file_service.rename_file(file_id, current_user.id, file_data.name)


@router.put("/{file_id}/move", response_model=FileResponse)
async def move_file(
    file_id: UUID,
    move_data: FileMove,
    current_user: User = Depends(get_current_active_user),
    file_service: FileService = Depends(get_file_service)
):
    """
    Move a file to a different folder.

    - **folder_id**: Destination folder ID
    """
    return file_service.move_file(file_id, current_user.id, move_data.folder_id)


@router.delete("/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_file(
    file_id: UUID,
    current_user: User = Depends(get_current_active_user),
    file_service: FileService = Depends(get_file_service)
):
    """Delete a file and its stored content."""
    file_service.delete_file(file_id, current_user.id)
    return None
