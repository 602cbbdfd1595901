# backend/axioscan/models/__init__.py
from ..database import Base
from .folder import Folder
from .tag import Tag
from .document import Document, document_tags
from .page import Page

__all__ = [
    "Base",
    "Folder",
    "Tag",
    "Document",
    "document_tags",
    "Page",
]
