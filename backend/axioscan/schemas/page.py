# backend/axioscan/schemas/page.py
from typing import Optional

from pydantic import computed_field

from .base import BaseSchema, TimestampMixin
from ..utils.files import public_url


class Page(BaseSchema, TimestampMixin):
    id: int
    document_id: int
    page_number: int
    image_locator: str
    thumbnail_locator: Optional[str] = None

    @computed_field
    @property
    def image_url(self) -> str:
        return public_url(self.image_locator)

    @computed_field
    @property
    def thumbnail_url(self) -> Optional[str]:
        return public_url(self.thumbnail_locator or self.image_locator)
