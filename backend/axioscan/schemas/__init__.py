# backend/axioscan/schemas/__init__.py
from .document import Document, DocumentUpdate, DocumentDetail
from .page import Page
from .folder import Folder, FolderCreate, FolderUpdate
from .tag import Tag, TagCreate, TagUpdate
from .composition import MergeRequest, MergePreviewRequest, MergePreviewItem, ExtractRequest, SplitRequest
from .edit import EditRequest, EditResult, PageEdit

__all__ = [
    "Document", "DocumentUpdate", "DocumentDetail",
    "Page",
    "Folder", "FolderCreate", "FolderUpdate",
    "Tag", "TagCreate", "TagUpdate",
    "MergeRequest", "MergePreviewRequest", "MergePreviewItem", "ExtractRequest", "SplitRequest",
    "EditRequest", "EditResult", "PageEdit",
]
