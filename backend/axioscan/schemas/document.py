# backend/axioscan/schemas/document.py
from datetime import datetime
from typing import List, Optional

from .base import BaseSchema, TimestampMixin
from .page import Page
from .tag import Tag


class DocumentUpdate(BaseSchema):
    name: Optional[str] = None
    is_favorite: Optional[bool] = None
    folder_id: Optional[int] = None


class Document(BaseSchema, TimestampMixin):
    id: int
    name: str
    folder_id: Optional[int] = None
    is_favorite: bool = False
    page_count: int = 0
    file_size: int = 0
    updated_at: datetime
    tags: List[Tag] = []


class DocumentDetail(Document):
    pages: List[Page] = []
