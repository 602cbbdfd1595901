# backend/axioscan/storage/__init__.py
from .base import BlobStore, RecordStore, DocumentDraft, PageDraft, PageLocatorUpdate
from .blobs import LocalBlobStore, blob_store
from .records import SqlRecordStore

__all__ = [
    "BlobStore", "RecordStore", "DocumentDraft", "PageDraft", "PageLocatorUpdate",
    "LocalBlobStore", "blob_store", "SqlRecordStore",
]
