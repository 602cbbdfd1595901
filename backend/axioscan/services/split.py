# backend/axioscan/services/split.py
import asyncio
import time
from typing import Dict, List, Optional, Sequence

from ..errors import EmptySelectionError, InvalidArgument, NoExportableContentError
from ..models import Document, Page
from ..utils.files import display_timestamp
from ..utils.logging import service_logger
from .repository import DocumentRepository, EncodedPage, encode_page


class SplitService:
    """Copy a selection of a document's pages into new documents; the source is never changed"""

    def __init__(self, repository: DocumentRepository):
        self.repository = repository

    @staticmethod
    def _select(pages_by_id: Dict[int, Page], page_ids: Sequence[int]) -> List[Page]:
        selected = set(page_ids)
        if not selected:
            raise EmptySelectionError("Select at least one page")

        unknown = selected - pages_by_id.keys()
        if unknown:
            raise InvalidArgument(f"Pages do not belong to this document: {sorted(unknown)}")

        # Selection order carries no meaning; pages keep their original order
        return sorted((pages_by_id[page_id] for page_id in selected), key=lambda page: page.page_number)

    async def _encode_pages(self, owner_id: str, source: Document, pages: List[Page]) -> List[EncodedPage]:
        loaded = await self.repository.load_page_images(owner_id, source.id, pages)
        if not loaded:
            raise NoExportableContentError("None of the selected pages could be read")

        encoded = await asyncio.gather(*(asyncio.to_thread(encode_page, item.image) for item in loaded))
        return list(encoded)

    async def extract(
            self,
            owner_id: str,
            document_id: int,
            page_ids: Sequence[int],
            name: Optional[str] = None,
            folder_id: Optional[int] = None
    ) -> Document:
        source = await self.repository.get_document(owner_id, document_id)
        pages = await self.repository.list_pages(owner_id, document_id)
        selection = self._select({page.id: page for page in pages}, page_ids)

        encoded = await self._encode_pages(owner_id, source, selection)
        document = await self.repository.create_document_from_encoded(
            owner_id,
            name or f"{source.name} - Extracted {display_timestamp()}",
            encoded,
            folder_id
        )

        service_logger.info("Extracted pages into new document", extra={
            "source_document_id": source.id,
            "document_id": document.id,
            "source_pages": [page.page_number for page in selection],
            "page_count": document.page_count
        })
        return document

    async def split(
            self,
            owner_id: str,
            document_id: int,
            groups: Sequence[Sequence[int]],
            name: Optional[str] = None,
            folder_id: Optional[int] = None
    ) -> List[Document]:
        """One new document per non-empty group of page ids; all parts are created or none"""
        start_time = time.time()
        source = await self.repository.get_document(owner_id, document_id)
        pages = await self.repository.list_pages(owner_id, document_id)
        pages_by_id = {page.id: page for page in pages}

        non_empty = [group for group in groups if group]
        if not non_empty:
            raise EmptySelectionError("Select at least one page")

        # Validate every group before touching any bytes
        selections = [self._select(pages_by_id, group) for group in non_empty]

        base_name = name or source.name
        parts = []
        for part, selection in enumerate(selections, start=1):
            parts.append((f"{base_name} - Part {part}", await self._encode_pages(owner_id, source, selection)))

        documents = await self.repository.create_documents_from_encoded(owner_id, parts, folder_id)

        service_logger.info("Split document", extra={
            "source_document_id": source.id,
            "document_ids": [document.id for document in documents],
            "source_pages": [[page.page_number for page in selection] for selection in selections],
            "execution_time_ms": round((time.time() - start_time) * 1000, 2)
        })
        return documents
