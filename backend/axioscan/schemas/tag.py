# backend/axioscan/schemas/tag.py
from typing import Optional

from pydantic import Field

from .base import BaseSchema, TimestampMixin

HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"


class TagBase(BaseSchema):
    name: str
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR)


class TagCreate(TagBase):
    pass


class TagUpdate(BaseSchema):
    name: Optional[str] = None
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR)


class Tag(TagBase, TimestampMixin):
    id: int
