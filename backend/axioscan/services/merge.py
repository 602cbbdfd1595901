# backend/axioscan/services/merge.py
import asyncio
import time
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence

from PIL import Image

from ..errors import EmptySelectionError, InsufficientInputError, InvalidArgument
from ..models import Document, Page
from ..utils.files import display_timestamp
from ..utils.logging import service_logger
from .repository import DocumentRepository, encode_page


@dataclass
class MergeItem:
    source_document_id: int
    source_document_name: str
    page: Page
    image: Image.Image


class MergePlan:
    """Ordered pages of a pending merge; the caller may reorder or drop items before commit"""

    def __init__(self, items: Sequence[MergeItem]):
        self.items: List[MergeItem] = list(items)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[MergeItem]:
        return iter(self.items)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.items):
            raise InvalidArgument(f"Merge position {index} out of range for {len(self.items)} pages")

    def move(self, from_index: int, to_index: int) -> None:
        self._check_index(from_index)
        self._check_index(to_index)
        self.items.insert(to_index, self.items.pop(from_index))

    def remove(self, index: int) -> MergeItem:
        self._check_index(index)
        return self.items.pop(index)

    def arrange(self, order: Sequence[int]) -> None:
        """Keep only the items at the given positions, in that order"""
        if len(set(order)) != len(order):
            raise InvalidArgument("Merge order must not repeat a position")
        for index in order:
            self._check_index(index)
        self.items = [self.items[index] for index in order]


class MergeService:
    def __init__(self, repository: DocumentRepository):
        self.repository = repository

    async def load_pages(self, owner_id: str, document_ids: Sequence[int]) -> MergePlan:
        """Pages of every input document, document by document, each sorted by page number"""
        unique_ids = list(dict.fromkeys(document_ids))
        if len(unique_ids) < 2:
            raise InsufficientInputError("Select at least two documents to merge")

        documents = [await self.repository.get_document(owner_id, document_id) for document_id in unique_ids]
        loaded = await asyncio.gather(*(
            self.repository.load_page_images(owner_id, document.id) for document in documents
        ))

        items = [
            MergeItem(
                source_document_id=document.id,
                source_document_name=document.name,
                page=item.page,
                image=item.image
            )
            for document, pages in zip(documents, loaded)
            for item in pages
        ]
        service_logger.info("Loaded pages for merge", extra={
            "owner_id": owner_id,
            "document_ids": unique_ids,
            "page_count": len(items)
        })
        return MergePlan(items)

    async def commit(
            self,
            owner_id: str,
            plan: MergePlan,
            name: Optional[str] = None,
            folder_id: Optional[int] = None
    ) -> Document:
        """Create one new document from the plan, numbered 1..M in plan order"""
        if not plan.items:
            raise EmptySelectionError("A merged document needs at least one page")

        start_time = time.time()
        encoded = await asyncio.gather(*(asyncio.to_thread(encode_page, item.image) for item in plan))
        document = await self.repository.create_document_from_encoded(
            owner_id,
            name or f"Merged Document {display_timestamp()}",
            list(encoded),
            folder_id
        )

        service_logger.info("Merge committed", extra={
            "document_id": document.id,
            "source_documents": sorted({item.source_document_id for item in plan}),
            "page_count": document.page_count,
            "execution_time_ms": round((time.time() - start_time) * 1000, 2)
        })
        return document

    async def merge(
            self,
            owner_id: str,
            document_ids: Sequence[int],
            order: Optional[Sequence[int]] = None,
            name: Optional[str] = None,
            folder_id: Optional[int] = None
    ) -> Document:
        plan = await self.load_pages(owner_id, document_ids)
        if order is not None:
            plan.arrange(order)
        return await self.commit(owner_id, plan, name, folder_id)
