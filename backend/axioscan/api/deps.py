# backend/axioscan/api/deps.py
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from ..services import DocumentRepository, ExportService, MergeService, SplitService
from ..storage import BlobStore, SqlRecordStore, blob_store
from ..utils.logging import api_logger


async def get_owner_id(x_owner_id: Optional[str] = Header(default=None)) -> str:
    """Owner identity of the authenticated caller, forwarded by the auth layer"""
    owner_id = (x_owner_id or "").strip()
    if not owner_id:
        api_logger.warning("Request without owner identity")
        raise HTTPException(status_code=401, detail="Missing X-Owner-Id header")
    return owner_id


def get_blob_store() -> BlobStore:
    return blob_store


def get_repository(
        db: Session = Depends(get_db),
        blobs: BlobStore = Depends(get_blob_store)
) -> DocumentRepository:
    return DocumentRepository(blobs, SqlRecordStore(db))


def get_merge_service(repository: DocumentRepository = Depends(get_repository)) -> MergeService:
    return MergeService(repository)


def get_split_service(repository: DocumentRepository = Depends(get_repository)) -> SplitService:
    return SplitService(repository)


def get_export_service(repository: DocumentRepository = Depends(get_repository)) -> ExportService:
    return ExportService(repository)
