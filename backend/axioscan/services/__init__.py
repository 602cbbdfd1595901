# backend/axioscan/services/__init__.py
from .cleanup import cleanup_service
from .repository import DocumentRepository
from .edit_session import PageEditSession, PageState, SaveResult
from .merge import MergeService, MergePlan, MergeItem
from .split import SplitService
from .export import ExportService, ExportFormat, ExportedFile

__all__ = [
    "cleanup_service", "DocumentRepository",
    "PageEditSession", "PageState", "SaveResult",
    "MergeService", "MergePlan", "MergeItem",
    "SplitService",
    "ExportService", "ExportFormat", "ExportedFile",
]
