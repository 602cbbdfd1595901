# backend/axioscan/services/edit_session.py
import asyncio
import enum
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from PIL import Image

from ..errors import InvalidArgument
from ..imaging import (
    AnnotationOverlay,
    CropAspect,
    FilterKind,
    FlipAxis,
    Rect,
    WatermarkOptions,
    adjust_color,
    apply_filter,
    aspect_crop_rect,
    composite_over,
    crop,
    flip,
    generate_watermark_layer,
    make_thumbnail,
    raster_fingerprint,
    render_overlay,
    rotate,
)
from ..imaging.transforms import image_size
from ..models import Document, Page
from ..storage.base import PageLocatorUpdate
from ..utils.logging import service_logger
from .repository import DocumentRepository


class PageState(str, enum.Enum):
    CLEAN = "clean"
    DIRTY = "dirty"
    UPLOADING = "uploading"


@dataclass
class EditablePage:
    page: Page
    original: Image.Image
    edited: Image.Image
    byte_size: int
    state: PageState = PageState.CLEAN
    _original_fingerprint: Optional[bytes] = field(default=None, repr=False)

    @property
    def page_id(self) -> int:
        return self.page.id

    @property
    def page_number(self) -> int:
        return self.page.page_number

    def original_fingerprint(self) -> bytes:
        if self._original_fingerprint is None:
            self._original_fingerprint = raster_fingerprint(self.original)
        return self._original_fingerprint

    def differs_from_original(self) -> bool:
        if self.edited is self.original:
            return False
        if self.edited.size != self.original.size or self.edited.mode != self.original.mode:
            return True
        return raster_fingerprint(self.edited) != self.original_fingerprint()


@dataclass
class SaveResult:
    document: Document
    saved_page_ids: List[int]
    file_size: int


class PageEditSession:
    """In-memory edits over the pages of one document.

    Pages move CLEAN -> DIRTY when an edit changes their bytes, DIRTY ->
    UPLOADING while a save is in flight, and back to CLEAN (with new
    locators) once the save commits. A failed or cancelled save leaves the
    edits in place and the pages DIRTY so the save can be retried.

    Pages are addressed by their persisted page number. Pages that could not
    be decoded are not loaded, and addressing one raises InvalidArgument.
    """

    def __init__(
            self,
            repository: DocumentRepository,
            owner_id: str,
            document: Document,
            pages: List[EditablePage]
    ):
        self.repository = repository
        self.owner_id = owner_id
        self.document = document
        self.pages = pages

    @classmethod
    async def open(cls, repository: DocumentRepository, owner_id: str, document_id: int) -> "PageEditSession":
        document = await repository.get_document(owner_id, document_id)
        loaded = await repository.load_page_images(owner_id, document_id)
        pages = [
            EditablePage(page=item.page, original=item.image, edited=item.image, byte_size=item.byte_size)
            for item in loaded
        ]
        service_logger.info("Opened edit session", extra={
            "document_id": document_id,
            "page_count": document.page_count,
            "editable_pages": len(pages)
        })
        return cls(repository, owner_id, document, pages)

    @property
    def page_numbers(self) -> List[int]:
        return [page.page_number for page in self.pages]

    def page(self, page_number: int) -> EditablePage:
        """Loaded page by its persisted number; unreadable pages were never loaded"""
        for page in self.pages:
            if page.page_number == page_number:
                return page
        if 1 <= page_number <= self.document.page_count:
            raise InvalidArgument(f"Page {page_number} could not be loaded for editing")
        raise InvalidArgument(f"Page {page_number} out of range for {self.document.page_count} pages")

    @property
    def has_unsaved_changes(self) -> bool:
        return any(page.state != PageState.CLEAN for page in self.pages)

    def _refresh_state(self, page: EditablePage) -> None:
        page.state = PageState.DIRTY if page.differs_from_original() else PageState.CLEAN

    def _edit(self, page_number: int, transform: Callable[[Image.Image], Image.Image]) -> EditablePage:
        page = self.page(page_number)
        if page.state == PageState.UPLOADING:
            raise InvalidArgument(f"Page {page.page_number} is being saved")

        page.edited = transform(page.edited)
        self._refresh_state(page)
        return page

    # Edits

    def crop(self, page_number: int, rect: Rect) -> EditablePage:
        return self._edit(page_number, lambda image: crop(image, rect))

    def crop_to_aspect(self, page_number: int, aspect: CropAspect) -> EditablePage:
        return self._edit(page_number, lambda image: crop(image, aspect_crop_rect(image_size(image), CropAspect(aspect))))

    def rotate(self, page_number: int, degrees: float) -> EditablePage:
        return self._edit(page_number, lambda image: rotate(image, degrees))

    def flip(self, page_number: int, axis: FlipAxis) -> EditablePage:
        return self._edit(page_number, lambda image: flip(image, FlipAxis(axis)))

    def apply_filter(self, page_number: int, kind: FilterKind, intensity: float = 1.0) -> EditablePage:
        return self._edit(page_number, lambda image: apply_filter(image, kind, intensity))

    def adjust(
            self,
            page_number: int,
            brightness: float = 0.0,
            contrast: float = 1.0,
            saturation: float = 1.0
    ) -> EditablePage:
        return self._edit(page_number, lambda image: adjust_color(image, brightness, contrast, saturation))

    def watermark(self, page_number: int, options: WatermarkOptions) -> EditablePage:
        """Bake a watermark generated at the page's full resolution"""
        def bake(image: Image.Image) -> Image.Image:
            layer = generate_watermark_layer(options, image_size(image))
            return composite_over(image, layer.image)

        return self._edit(page_number, bake)

    def annotate(self, page_number: int, overlay: AnnotationOverlay) -> EditablePage:
        if overlay.is_empty():
            return self.page(page_number)
        return self._edit(page_number, lambda image: composite_over(image, render_overlay(overlay, image_size(image))))

    def replace(self, page_number: int, image: Image.Image) -> EditablePage:
        return self._edit(page_number, lambda _: image)

    def revert(self, page_number: int) -> EditablePage:
        return self._edit(page_number, lambda _: self.page(page_number).original)

    def preview(
            self,
            page_number: int,
            max_size: Optional[int] = None,
            watermark: Optional[WatermarkOptions] = None
    ) -> Image.Image:
        """Downscaled edited page, optionally with a preview-resolution watermark"""
        preview = make_thumbnail(self.page(page_number).edited, max_size)
        if watermark is not None:
            layer = generate_watermark_layer(watermark, image_size(preview))
            preview = composite_over(preview, layer.image)
        return preview

    # Persistence

    def dirty_pages(self) -> List[EditablePage]:
        """Pages whose edited bytes differ from the last persisted bytes"""
        dirty = []
        for page in self.pages:
            if page.state == PageState.UPLOADING:
                continue
            self._refresh_state(page)
            if page.state == PageState.DIRTY:
                dirty.append(page)
        return dirty

    async def save(self) -> SaveResult:
        """Upload dirty pages concurrently, then write page records once and the document once"""
        dirty = self.dirty_pages()
        if not dirty:
            return SaveResult(document=self.document, saved_page_ids=[], file_size=self.document.file_size)

        start_time = time.time()
        service_logger.info("Saving edit session", extra={
            "document_id": self.document.id,
            "dirty_pages": [page.page_number for page in dirty]
        })

        for page in dirty:
            page.state = PageState.UPLOADING

        committed = False
        try:
            contents = await asyncio.gather(*(
                self.repository.upload_page_content(self.owner_id, self.document.id, page.page, page.edited)
                for page in dirty
            ))

            updates = [
                PageLocatorUpdate(
                    page_id=page.page_id,
                    image_locator=content.image_locator,
                    thumbnail_locator=content.thumbnail_locator
                )
                for page, content in zip(dirty, contents)
            ]
            file_size = max(0, (self.document.file_size or 0) + sum(
                content.byte_size - page.byte_size for page, content in zip(dirty, contents)
            ))

            document = await self.repository.commit_page_updates(
                self.owner_id, self.document.id, updates, file_size
            )
            committed = True
        finally:
            if not committed:
                for page in dirty:
                    page.state = PageState.DIRTY
                service_logger.warning("Edit session save did not complete, edits kept locally", extra={
                    "document_id": self.document.id,
                    "dirty_pages": len(dirty)
                })

        for page, content in zip(dirty, contents):
            page.original = page.edited
            page.byte_size = content.byte_size
            page._original_fingerprint = None
            page.state = PageState.CLEAN
        self.document = document

        service_logger.info("Saved edit session", extra={
            "document_id": document.id,
            "saved_pages": len(dirty),
            "file_size": file_size,
            "execution_time_ms": round((time.time() - start_time) * 1000, 2)
        })
        return SaveResult(
            document=document,
            saved_page_ids=[page.page_id for page in dirty],
            file_size=file_size
        )
