# backend/axioscan/schemas/folder.py
from typing import Optional
from .base import BaseSchema, TimestampMixin

class FolderBase(BaseSchema):
    name: str
    parent_id: Optional[int] = None

class FolderCreate(FolderBase):
    pass

class FolderUpdate(BaseSchema):
    name: Optional[str] = None
    parent_id: Optional[int] = None

class Folder(FolderBase, TimestampMixin):
    id: int
