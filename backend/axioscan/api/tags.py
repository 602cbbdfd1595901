# backend/axioscan/api/tags.py
from typing import List

from fastapi import APIRouter, Depends

from ..schemas.tag import Tag as TagSchema, TagCreate, TagUpdate
from ..services import DocumentRepository
from ..utils.logging import api_logger
from .deps import get_owner_id, get_repository

router = APIRouter(prefix="/api/tags", tags=["tags"])


@router.get("", response_model=List[TagSchema])
async def list_tags(
        owner_id: str = Depends(get_owner_id),
        repository: DocumentRepository = Depends(get_repository)
):
    return await repository.list_tags(owner_id)


@router.post("", response_model=TagSchema, status_code=201)
async def create_tag(
        tag: TagCreate,
        owner_id: str = Depends(get_owner_id),
        repository: DocumentRepository = Depends(get_repository)
):
    api_logger.info("Creating tag", extra={"owner_id": owner_id, "tag_name": tag.name})
    return await repository.create_tag(owner_id, tag.name, tag.color)


@router.put("/{tag_id}", response_model=TagSchema)
async def update_tag(
        tag_id: int,
        tag: TagUpdate,
        owner_id: str = Depends(get_owner_id),
        repository: DocumentRepository = Depends(get_repository)
):
    return await repository.update_tag(owner_id, tag_id, tag.model_dump(exclude_unset=True))


@router.delete("/{tag_id}")
async def delete_tag(
        tag_id: int,
        owner_id: str = Depends(get_owner_id),
        repository: DocumentRepository = Depends(get_repository)
):
    api_logger.info("Deleting tag", extra={"tag_id": tag_id})
    await repository.delete_tag(owner_id, tag_id)
    return {"success": True}


@router.put("/{tag_id}/documents/{document_id}")
async def tag_document(
        tag_id: int,
        document_id: int,
        owner_id: str = Depends(get_owner_id),
        repository: DocumentRepository = Depends(get_repository)
):
    await repository.tag_document(owner_id, document_id, tag_id)
    return {"success": True}


@router.delete("/{tag_id}/documents/{document_id}")
async def untag_document(
        tag_id: int,
        document_id: int,
        owner_id: str = Depends(get_owner_id),
        repository: DocumentRepository = Depends(get_repository)
):
    await repository.untag_document(owner_id, document_id, tag_id)
    return {"success": True}
