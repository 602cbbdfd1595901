# backend/axioscan/services/repository.py
import asyncio
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from PIL import Image

from ..errors import (
    ConsistencyViolation,
    EmptySelectionError,
    ImageCodecError,
    InvalidArgument,
    NotFoundError,
)
from ..imaging import codec
from ..models import Document, Folder, Page, Tag
from ..storage.base import (
    BlobStore,
    DocumentDraft,
    PageDraft,
    PageLocatorUpdate,
    RecordStore,
    utcnow,
)
from ..utils.logging import service_logger
from .cleanup import cleanup_service

JPEG_CONTENT_TYPE = codec.CONTENT_TYPES[codec.JPEG]


@dataclass
class EncodedPage:
    image_bytes: bytes
    thumbnail_bytes: bytes

    @property
    def byte_size(self) -> int:
        return len(self.image_bytes)


@dataclass
class UploadedContent:
    image_locator: str
    thumbnail_locator: str
    byte_size: int

    @property
    def locators(self) -> List[str]:
        return [self.image_locator, self.thumbnail_locator]


@dataclass
class LoadedPage:
    page: Page
    image: Image.Image
    byte_size: int


def encode_page(image: Image.Image, quality: Optional[int] = None) -> EncodedPage:
    """Full-size JPEG plus a JPEG thumbnail derived from the same raster"""
    return EncodedPage(
        image_bytes=codec.encode_image(image, codec.JPEG, quality),
        thumbnail_bytes=codec.encode_image(codec.make_thumbnail(image), codec.JPEG, quality),
    )


def verify_page_sequence(document: Document, pages: Sequence[Page]) -> None:
    """Pages must be numbered 1..N with N == document.page_count"""
    numbers = [page.page_number for page in pages]
    if numbers != list(range(1, len(pages) + 1)):
        raise ConsistencyViolation(
            f"Document {document.id} has non-contiguous page numbers: {numbers}"
        )
    if document.page_count != len(pages):
        raise ConsistencyViolation(
            f"Document {document.id} caches page_count={document.page_count} but has {len(pages)} pages"
        )


def _clean_name(name: Optional[str], what: str = "Document") -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise InvalidArgument(f"{what} name must not be empty")
    return cleaned


class DocumentRepository:
    """Document- and page-level operations over the blob and record stores.

    Every operation takes the owner identity explicitly.
    """

    def __init__(self, blob_store: BlobStore, record_store: RecordStore):
        self.blob_store = blob_store
        self.record_store = record_store

    # Documents

    async def list_documents(
            self,
            owner_id: str,
            folder_id: Optional[int] = None,
            favorites_only: bool = False
    ) -> List[Document]:
        return await self.record_store.list_documents(owner_id, folder_id, favorites_only)

    async def get_document(self, owner_id: str, document_id: int) -> Document:
        document = await self.record_store.get_document(owner_id, document_id)
        if not document:
            service_logger.warning("Document not found", extra={
                "owner_id": owner_id,
                "document_id": document_id
            })
            raise NotFoundError(f"Document {document_id} not found")
        return document

    async def create_document(
            self,
            owner_id: str,
            name: str,
            images: Sequence[Image.Image],
            folder_id: Optional[int] = None
    ) -> Document:
        """Create a document from captured or imported rasters, numbered 1..K in order"""
        encoded = await asyncio.gather(*(asyncio.to_thread(encode_page, image) for image in images))
        return await self.create_document_from_encoded(owner_id, name, list(encoded), folder_id)

    async def import_images(
            self,
            owner_id: str,
            name: str,
            contents: Sequence[bytes],
            folder_id: Optional[int] = None
    ) -> Document:
        images = []
        for index, data in enumerate(contents):
            try:
                images.append(codec.decode_image(data))
            except ImageCodecError as e:
                raise ImageCodecError(f"Imported file {index + 1} is not a readable image: {e.message}") from e
        return await self.create_document(owner_id, name, images, folder_id)

    async def create_document_from_encoded(
            self,
            owner_id: str,
            name: str,
            encoded_pages: Sequence[EncodedPage],
            folder_id: Optional[int] = None
    ) -> Document:
        """Upload every page, then create the document and its pages in one record write"""
        documents = await self.create_documents_from_encoded(owner_id, [(name, encoded_pages)], folder_id)
        return documents[0]

    async def create_documents_from_encoded(
            self,
            owner_id: str,
            parts: Sequence[Tuple[str, Sequence[EncodedPage]]],
            folder_id: Optional[int] = None
    ) -> List[Document]:
        """Upload the pages of every part, then create all documents in one record write.

        If anything fails or is cancelled before the record write completes,
        blobs uploaded so far are removed and the error propagates; none of
        the documents becomes visible.
        """
        if not parts:
            raise EmptySelectionError("Nothing to create")
        parts = [(_clean_name(name), list(pages)) for name, pages in parts]
        if any(not pages for _, pages in parts):
            raise EmptySelectionError("A document needs at least one page")
        await self._require_folder(owner_id, folder_id)

        start_time = time.time()
        service_logger.info("Creating documents", extra={
            "owner_id": owner_id,
            "document_names": [name for name, _ in parts],
            "page_count": sum(len(pages) for _, pages in parts)
        })

        # Filled as uploads finish so a cancelled gather still knows what to remove
        uploaded: List[UploadedContent] = []

        async def upload(page: EncodedPage) -> UploadedContent:
            content = await self.upload_encoded(page)
            uploaded.append(content)
            return content

        committed = False
        try:
            results = await asyncio.gather(
                *(upload(page) for _, pages in parts for page in pages),
                return_exceptions=True
            )
            failures = [r for r in results if isinstance(r, BaseException)]
            if failures:
                raise failures[0]

            contents = iter(results)
            records = []
            for name, pages in parts:
                drafts = [
                    PageDraft(
                        page_number=index + 1,
                        image_locator=content.image_locator,
                        thumbnail_locator=content.thumbnail_locator
                    )
                    for index, content in zip(range(len(pages)), contents)
                ]
                draft = DocumentDraft(
                    name=name,
                    page_count=len(drafts),
                    file_size=sum(page.byte_size for page in pages),
                    folder_id=folder_id
                )
                records.append((draft, drafts))

            documents = await self.record_store.create_documents(owner_id, records)
            committed = True
        finally:
            if not committed:
                service_logger.error("Document creation did not complete, removing uploaded blobs", extra={
                    "owner_id": owner_id,
                    "document_names": [name for name, _ in parts],
                    "uploaded_pages": len(uploaded)
                })
                await cleanup_service.delete_blobs(
                    self.blob_store,
                    [locator for content in uploaded for locator in content.locators]
                )

        for document in documents:
            verify_page_sequence(document, document.pages)

        service_logger.info("Successfully created documents", extra={
            "document_ids": [document.id for document in documents],
            "page_count": sum(document.page_count for document in documents),
            "execution_time_ms": round((time.time() - start_time) * 1000, 2)
        })
        return documents

    async def update_document(self, owner_id: str, document_id: int, fields: Dict[str, Any]) -> Document:
        """Rename, (un)favorite or move a document; always bumps updated_at"""
        fields = dict(fields)
        if "name" in fields:
            fields["name"] = _clean_name(fields["name"])
        if "folder_id" in fields:
            await self._require_folder(owner_id, fields["folder_id"])
        fields["updated_at"] = utcnow()

        document = await self.record_store.update_document(owner_id, document_id, fields)
        service_logger.info("Updated document", extra={
            "document_id": document_id,
            "update_fields": sorted(fields)
        })
        return document

    async def delete_document(self, owner_id: str, document_id: int) -> List[str]:
        """Delete the records atomically, then the blobs best-effort.

        Returns locators that could not be removed and are now orphaned.
        """
        locators = await self.record_store.delete_document(owner_id, document_id)
        orphaned = await cleanup_service.delete_blobs(self.blob_store, locators)
        service_logger.info("Deleted document", extra={
            "document_id": document_id,
            "blob_count": len(locators),
            "orphaned_blobs": len(orphaned)
        })
        return orphaned

    # Pages

    async def list_pages(self, owner_id: str, document_id: int) -> List[Page]:
        document = await self.get_document(owner_id, document_id)
        pages = await self.record_store.list_pages(owner_id, document_id)
        verify_page_sequence(document, pages)
        return pages

    async def get_page(self, owner_id: str, page_id: int) -> Page:
        page = await self.record_store.get_page(owner_id, page_id)
        if not page:
            raise NotFoundError(f"Page {page_id} not found")
        return page

    async def get_first_page(self, owner_id: str, document_id: int) -> Optional[Page]:
        pages = await self.list_pages(owner_id, document_id)
        return pages[0] if pages else None

    async def read_page_bytes(self, page: Page, thumbnail: bool = False) -> bytes:
        """Freshest bytes of a page; always bypasses intermediate caches"""
        locator = page.thumbnail_locator if thumbnail and page.thumbnail_locator else page.image_locator
        return await self.blob_store.get(locator, bypass_cache=True)

    async def _load_page(self, page: Page) -> Optional[LoadedPage]:
        try:
            data = await self.read_page_bytes(page)
            image = await asyncio.to_thread(codec.decode_image, data)
        except (ImageCodecError, NotFoundError) as e:
            service_logger.warning("Skipping unreadable page", extra={
                "page_id": page.id,
                "page_number": page.page_number,
                "error": e.message
            })
            return None
        return LoadedPage(page=page, image=image, byte_size=len(data))

    async def load_page_images(
            self,
            owner_id: str,
            document_id: int,
            pages: Optional[Sequence[Page]] = None
    ) -> List[LoadedPage]:
        """Fetch and decode pages concurrently, in page-number order.

        Pages that cannot be read or decoded are skipped with a warning.
        """
        if pages is None:
            pages = await self.list_pages(owner_id, document_id)
        ordered = sorted(pages, key=lambda p: p.page_number)

        results = await asyncio.gather(*(self._load_page(page) for page in ordered))
        loaded = [result for result in results if result is not None]

        service_logger.debug("Loaded page images", extra={
            "document_id": document_id,
            "requested": len(ordered),
            "loaded": len(loaded)
        })
        return loaded

    async def upload_encoded(self, encoded: EncodedPage) -> UploadedContent:
        image_locator = await self.blob_store.put(encoded.image_bytes, JPEG_CONTENT_TYPE)
        thumbnail_locator = await self.blob_store.put(encoded.thumbnail_bytes, JPEG_CONTENT_TYPE)
        return UploadedContent(
            image_locator=image_locator,
            thumbnail_locator=thumbnail_locator,
            byte_size=encoded.byte_size
        )

    async def upload_page_content(
            self,
            owner_id: str,
            document_id: int,
            page: Page,
            image: Image.Image
    ) -> UploadedContent:
        """Encode and upload new bytes for a page; records are not touched"""
        encoded = await asyncio.to_thread(encode_page, image)
        content = await self.upload_encoded(encoded)
        service_logger.debug("Uploaded page content", extra={
            "owner_id": owner_id,
            "document_id": document_id,
            "page_id": page.id,
            "byte_size": content.byte_size
        })
        return content

    async def commit_page_updates(
            self,
            owner_id: str,
            document_id: int,
            updates: List[PageLocatorUpdate],
            file_size: int
    ) -> Document:
        """One batch write for the page records, then one write on the document"""
        await self.record_store.update_pages(owner_id, document_id, updates)
        return await self.record_store.update_document(owner_id, document_id, {
            "updated_at": utcnow(),
            "file_size": file_size
        })

    # Folders

    async def _require_folder(self, owner_id: str, folder_id: Optional[int]) -> Optional[Folder]:
        if folder_id is None:
            return None
        folder = await self.record_store.get_folder(owner_id, folder_id)
        if not folder:
            raise InvalidArgument(f"Folder {folder_id} does not exist for this owner")
        return folder

    async def list_folders(self, owner_id: str) -> List[Folder]:
        return await self.record_store.list_folders(owner_id)

    async def create_folder(self, owner_id: str, name: str, parent_id: Optional[int] = None) -> Folder:
        await self._require_folder(owner_id, parent_id)
        return await self.record_store.create_folder(owner_id, _clean_name(name, "Folder"), parent_id)

    async def update_folder(self, owner_id: str, folder_id: int, fields: Dict[str, Any]) -> Folder:
        fields = dict(fields)
        if "name" in fields:
            fields["name"] = _clean_name(fields["name"], "Folder")
        if fields.get("parent_id") is not None:
            await self._check_folder_parent(owner_id, folder_id, fields["parent_id"])
        return await self.record_store.update_folder(owner_id, folder_id, fields)

    async def _check_folder_parent(self, owner_id: str, folder_id: int, parent_id: int) -> None:
        """A folder cannot be moved under itself or one of its descendants"""
        ancestor = await self._require_folder(owner_id, parent_id)
        while ancestor is not None:
            if ancestor.id == folder_id:
                raise InvalidArgument(f"Folder {folder_id} cannot be nested inside itself")
            if ancestor.parent_id is None:
                break
            ancestor = await self.record_store.get_folder(owner_id, ancestor.parent_id)

    async def delete_folder(self, owner_id: str, folder_id: int) -> None:
        await self.record_store.delete_folder(owner_id, folder_id)

    # Tags

    async def list_tags(self, owner_id: str) -> List[Tag]:
        return await self.record_store.list_tags(owner_id)

    async def create_tag(self, owner_id: str, name: str, color: Optional[str] = None) -> Tag:
        return await self.record_store.create_tag(owner_id, _clean_name(name, "Tag"), color)

    async def update_tag(self, owner_id: str, tag_id: int, fields: Dict[str, Any]) -> Tag:
        fields = dict(fields)
        if "name" in fields:
            fields["name"] = _clean_name(fields["name"], "Tag")
        return await self.record_store.update_tag(owner_id, tag_id, fields)

    async def delete_tag(self, owner_id: str, tag_id: int) -> None:
        await self.record_store.delete_tag(owner_id, tag_id)

    async def tag_document(self, owner_id: str, document_id: int, tag_id: int) -> None:
        await self.record_store.add_tag_to_document(owner_id, document_id, tag_id)

    async def untag_document(self, owner_id: str, document_id: int, tag_id: int) -> None:
        await self.record_store.remove_tag_from_document(owner_id, document_id, tag_id)
