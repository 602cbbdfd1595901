# backend/axioscan/schemas/composition.py
from typing import List, Optional

from pydantic import BaseModel, Field

from .base import BaseSchema


class MergeRequest(BaseModel):
    document_ids: List[int]
    # Positions into the loaded page list; omitted keeps the natural order
    order: Optional[List[int]] = None
    name: Optional[str] = None
    folder_id: Optional[int] = None


class MergePreviewRequest(BaseModel):
    document_ids: List[int]


class MergePreviewItem(BaseSchema):
    position: int
    source_document_id: int
    source_document_name: str
    page_id: int
    page_number: int


class ExtractRequest(BaseModel):
    document_id: int
    page_ids: List[int]
    name: Optional[str] = None
    folder_id: Optional[int] = None


class SplitRequest(BaseModel):
    document_id: int
    groups: List[List[int]] = Field(min_length=1)
    name: Optional[str] = None
    folder_id: Optional[int] = None
