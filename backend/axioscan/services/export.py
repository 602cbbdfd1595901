# backend/axioscan/services/export.py
import asyncio
import enum
import io
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from PIL import Image
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from ..config import settings
from ..errors import InvalidArgument, NoExportableContentError, RemoteIOError
from ..imaging import Size, encode_image
from ..imaging import codec
from ..utils.files import sanitize_filename
from ..utils.logging import service_logger
from .repository import DocumentRepository


class ExportFormat(str, enum.Enum):
    PDF = "pdf"
    JPEG = "jpeg"
    PNG = "png"


@dataclass
class ExportedFile:
    filename: str
    content: bytes
    media_type: str


def fit_rect(image_size: Size, canvas_width: float, canvas_height: float) -> Tuple[float, float, float, float]:
    """Aspect-preserving placement (x, y, width, height) of an image centered on a canvas"""
    image_ratio = image_size.width / image_size.height
    canvas_ratio = canvas_width / canvas_height

    if canvas_ratio > image_ratio:
        # Canvas is relatively wider: fit to height, center horizontally
        height = canvas_height
        width = height * image_ratio
        return (canvas_width - width) / 2, 0.0, width, height

    width = canvas_width
    height = width / image_ratio
    return 0.0, (canvas_height - height) / 2, width, height


def render_pdf(
        images: Sequence[Image.Image],
        page_width: Optional[float] = None,
        page_height: Optional[float] = None,
        title: Optional[str] = None
) -> bytes:
    """One fixed-size PDF page per image"""
    page_width = page_width or settings.PDF_PAGE_WIDTH
    page_height = page_height or settings.PDF_PAGE_HEIGHT

    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=(page_width, page_height))
    if title:
        pdf.setTitle(title)

    for image in images:
        x, y, width, height = fit_rect(Size(*image.size), page_width, page_height)
        pdf.drawImage(ImageReader(codec.flatten_alpha(image)), x, y, width=width, height=height)
        pdf.showPage()

    pdf.save()
    return buffer.getvalue()


def export_filename(name: str, extension: str, page_index: Optional[int] = None) -> str:
    base = sanitize_filename(name)
    if page_index is None:
        return f"{base}.{extension}"
    return f"{base}_Page{page_index + 1}.{extension}"


class ExportService:
    def __init__(self, repository: DocumentRepository):
        self.repository = repository

    async def export_document(
            self,
            owner_id: str,
            document_id: int,
            format: ExportFormat = ExportFormat.PDF
    ) -> List[ExportedFile]:
        try:
            format = ExportFormat(format)
        except ValueError as e:
            raise InvalidArgument(f"Unsupported export format: {format!r}") from e

        start_time = time.time()
        document = await self.repository.get_document(owner_id, document_id)
        loaded = await self.repository.load_page_images(owner_id, document_id)
        if not loaded:
            service_logger.warning("Nothing to export", extra={"document_id": document_id})
            raise NoExportableContentError(f"Document {document_id} has no readable pages")

        images = [item.image for item in loaded]

        if format == ExportFormat.PDF:
            content = await asyncio.to_thread(render_pdf, images, None, None, document.name)
            files = [ExportedFile(export_filename(document.name, "pdf"), content, "application/pdf")]
        else:
            image_format = codec.JPEG if format == ExportFormat.JPEG else codec.PNG
            extension = codec.EXTENSIONS[image_format]
            encoded = await asyncio.gather(*(
                asyncio.to_thread(encode_image, image, image_format) for image in images
            ))
            single = len(encoded) == 1
            files = [
                ExportedFile(
                    export_filename(document.name, extension, None if single else index),
                    content,
                    codec.CONTENT_TYPES[image_format]
                )
                for index, content in enumerate(encoded)
            ]

        service_logger.info("Exported document", extra={
            "document_id": document_id,
            "format": format.value,
            "exported_pages": len(images),
            "skipped_pages": document.page_count - len(images),
            "file_count": len(files),
            "execution_time_ms": round((time.time() - start_time) * 1000, 2)
        })
        return files

    async def write_export(
            self,
            owner_id: str,
            document_id: int,
            format: ExportFormat = ExportFormat.PDF,
            destination: Optional[Path] = None
    ) -> List[Path]:
        """Export and write the files into destination (defaults to the exports directory)"""
        files = await self.export_document(owner_id, document_id, format)
        destination = Path(destination or settings.EXPORTS_PATH)

        paths = []
        try:
            destination.mkdir(parents=True, exist_ok=True)
            for exported in files:
                path = destination / exported.filename
                path.write_bytes(exported.content)
                paths.append(path)
        except OSError as e:
            service_logger.error("Failed to write export", extra={
                "document_id": document_id,
                "destination": str(destination),
                "error": str(e)
            })
            raise RemoteIOError(f"Failed to write export: {e}") from e

        return paths
