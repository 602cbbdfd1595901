# backend/axioscan/api/compositions.py
import time
from typing import List

from fastapi import APIRouter, Depends

from ..schemas.composition import ExtractRequest, MergePreviewItem, MergePreviewRequest, MergeRequest, SplitRequest
from ..schemas.document import DocumentDetail
from ..services import MergeService, SplitService
from ..utils.logging import api_logger
from .deps import get_merge_service, get_owner_id, get_split_service

router = APIRouter(prefix="/api/compositions", tags=["compositions"])


@router.post("/merge/preview", response_model=List[MergePreviewItem])
async def preview_merge(
        request: MergePreviewRequest,
        owner_id: str = Depends(get_owner_id),
        merge_service: MergeService = Depends(get_merge_service)
):
    """Pages a merge would produce, in default order; positions feed MergeRequest.order"""
    plan = await merge_service.load_pages(owner_id, request.document_ids)
    return [
        MergePreviewItem(
            position=position,
            source_document_id=item.source_document_id,
            source_document_name=item.source_document_name,
            page_id=item.page.id,
            page_number=item.page.page_number
        )
        for position, item in enumerate(plan)
    ]


@router.post("/merge", response_model=DocumentDetail, status_code=201)
async def merge_documents(
        request: MergeRequest,
        owner_id: str = Depends(get_owner_id),
        merge_service: MergeService = Depends(get_merge_service)
):
    start_time = time.time()
    api_logger.info("Merging documents", extra={
        "owner_id": owner_id,
        "document_ids": request.document_ids,
        "reordered": request.order is not None
    })

    document = await merge_service.merge(
        owner_id,
        request.document_ids,
        order=request.order,
        name=request.name,
        folder_id=request.folder_id
    )

    api_logger.info("Successfully merged documents", extra={
        "document_id": document.id,
        "page_count": document.page_count,
        "execution_time_ms": round((time.time() - start_time) * 1000, 2)
    })
    return document


@router.post("/extract", response_model=DocumentDetail, status_code=201)
async def extract_pages(
        request: ExtractRequest,
        owner_id: str = Depends(get_owner_id),
        split_service: SplitService = Depends(get_split_service)
):
    api_logger.info("Extracting pages", extra={
        "document_id": request.document_id,
        "page_ids": request.page_ids
    })
    return await split_service.extract(
        owner_id,
        request.document_id,
        request.page_ids,
        name=request.name,
        folder_id=request.folder_id
    )


@router.post("/split", response_model=List[DocumentDetail], status_code=201)
async def split_document(
        request: SplitRequest,
        owner_id: str = Depends(get_owner_id),
        split_service: SplitService = Depends(get_split_service)
):
    api_logger.info("Splitting document", extra={
        "document_id": request.document_id,
        "group_count": len(request.groups)
    })
    return await split_service.split(
        owner_id,
        request.document_id,
        request.groups,
        name=request.name,
        folder_id=request.folder_id
    )
