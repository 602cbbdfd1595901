# backend/axioscan/api/folders.py
from typing import List

from fastapi import APIRouter, Depends

from ..schemas.folder import Folder as FolderSchema, FolderCreate, FolderUpdate
from ..services import DocumentRepository
from ..utils.logging import api_logger
from .deps import get_owner_id, get_repository

router = APIRouter(prefix="/api/folders", tags=["folders"])


@router.get("", response_model=List[FolderSchema])
async def list_folders(
        owner_id: str = Depends(get_owner_id),
        repository: DocumentRepository = Depends(get_repository)
):
    return await repository.list_folders(owner_id)


@router.post("", response_model=FolderSchema, status_code=201)
async def create_folder(
        folder: FolderCreate,
        owner_id: str = Depends(get_owner_id),
        repository: DocumentRepository = Depends(get_repository)
):
    api_logger.info("Creating folder", extra={
        "owner_id": owner_id,
        "folder_name": folder.name,
        "parent_id": folder.parent_id
    })
    return await repository.create_folder(owner_id, folder.name, folder.parent_id)


@router.put("/{folder_id}", response_model=FolderSchema)
async def update_folder(
        folder_id: int,
        folder: FolderUpdate,
        owner_id: str = Depends(get_owner_id),
        repository: DocumentRepository = Depends(get_repository)
):
    fields = folder.model_dump(exclude_unset=True)
    api_logger.info("Updating folder", extra={"folder_id": folder_id, "update_fields": sorted(fields)})
    return await repository.update_folder(owner_id, folder_id, fields)


@router.delete("/{folder_id}")
async def delete_folder(
        folder_id: int,
        owner_id: str = Depends(get_owner_id),
        repository: DocumentRepository = Depends(get_repository)
):
    api_logger.info("Deleting folder", extra={"folder_id": folder_id})
    await repository.delete_folder(owner_id, folder_id)
    return {"success": True}
