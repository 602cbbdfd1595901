# backend/axioscan/storage/base.py
import abc
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from ..models import Document, Folder, Page, Tag


@dataclass
class DocumentDraft:
    name: str
    page_count: int
    file_size: int
    folder_id: Optional[int] = None


@dataclass
class PageDraft:
    page_number: int
    image_locator: str
    thumbnail_locator: Optional[str] = None


@dataclass
class PageLocatorUpdate:
    page_id: int
    image_locator: str
    thumbnail_locator: Optional[str] = None


class BlobStore(abc.ABC):
    """Byte storage for page images and thumbnails addressed by opaque locators"""

    @abc.abstractmethod
    async def put(self, data: bytes, content_type: str) -> str:
        """Store bytes under a fresh locator and return it"""
        pass

    @abc.abstractmethod
    async def get(self, locator: str, bypass_cache: bool = False) -> bytes:
        """Return the bytes at locator; raises NotFoundError"""
        pass

    @abc.abstractmethod
    async def delete(self, locator: str) -> None:
        """Remove the bytes at locator; raises NotFoundError"""
        pass


class RecordStore(abc.ABC):
    """Metadata CRUD for documents, pages, folders and tags, scoped by owner"""

    # Documents

    @abc.abstractmethod
    async def list_documents(
            self,
            owner_id: str,
            folder_id: Optional[int] = None,
            favorites_only: bool = False
    ) -> List[Document]:
        pass

    @abc.abstractmethod
    async def get_document(self, owner_id: str, document_id: int) -> Optional[Document]:
        pass

    @abc.abstractmethod
    async def create_document(self, owner_id: str, draft: DocumentDraft, pages: List[PageDraft]) -> Document:
        """Create the document and all of its pages in one transaction"""
        pass

    @abc.abstractmethod
    async def create_documents(
            self,
            owner_id: str,
            documents: List[Tuple[DocumentDraft, List[PageDraft]]]
    ) -> List[Document]:
        """Create several documents with their pages in one transaction; all or none"""
        pass

    @abc.abstractmethod
    async def update_document(self, owner_id: str, document_id: int, fields: Dict[str, Any]) -> Document:
        pass

    @abc.abstractmethod
    async def delete_document(self, owner_id: str, document_id: int) -> List[str]:
        """Delete the document and its pages; return the locators they referenced"""
        pass

    # Pages

    @abc.abstractmethod
    async def list_pages(self, owner_id: str, document_id: int) -> List[Page]:
        pass

    @abc.abstractmethod
    async def get_page(self, owner_id: str, page_id: int) -> Optional[Page]:
        pass

    @abc.abstractmethod
    async def update_pages(
            self,
            owner_id: str,
            document_id: int,
            updates: List[PageLocatorUpdate]
    ) -> List[Page]:
        """Replace locators of several pages in one write"""
        pass

    # Folders

    @abc.abstractmethod
    async def list_folders(self, owner_id: str) -> List[Folder]:
        pass

    @abc.abstractmethod
    async def get_folder(self, owner_id: str, folder_id: int) -> Optional[Folder]:
        pass

    @abc.abstractmethod
    async def create_folder(self, owner_id: str, name: str, parent_id: Optional[int] = None) -> Folder:
        pass

    @abc.abstractmethod
    async def update_folder(self, owner_id: str, folder_id: int, fields: Dict[str, Any]) -> Folder:
        pass

    @abc.abstractmethod
    async def delete_folder(self, owner_id: str, folder_id: int) -> None:
        pass

    # Tags

    @abc.abstractmethod
    async def list_tags(self, owner_id: str) -> List[Tag]:
        pass

    @abc.abstractmethod
    async def get_tag(self, owner_id: str, tag_id: int) -> Optional[Tag]:
        pass

    @abc.abstractmethod
    async def create_tag(self, owner_id: str, name: str, color: Optional[str] = None) -> Tag:
        pass

    @abc.abstractmethod
    async def update_tag(self, owner_id: str, tag_id: int, fields: Dict[str, Any]) -> Tag:
        pass

    @abc.abstractmethod
    async def delete_tag(self, owner_id: str, tag_id: int) -> None:
        pass

    @abc.abstractmethod
    async def add_tag_to_document(self, owner_id: str, document_id: int, tag_id: int) -> None:
        pass

    @abc.abstractmethod
    async def remove_tag_from_document(self, owner_id: str, document_id: int, tag_id: int) -> None:
        pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
