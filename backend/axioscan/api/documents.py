# backend/axioscan/api/documents.py
import io
import time
import zipfile
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile

from ..imaging import AnnotationOverlay, Rect, RedactionBox, Stroke, WatermarkOptions
from ..schemas.document import Document as DocumentSchema, DocumentDetail, DocumentUpdate
from ..schemas.edit import EditRequest, EditResult, PageEdit
from ..services import DocumentRepository, ExportFormat, ExportService, PageEditSession
from ..utils.files import read_upload_files
from ..utils.logging import api_logger
from .deps import get_export_service, get_owner_id, get_repository

router = APIRouter(prefix="/api/documents", tags=["documents"])


def attachment_headers(filename: str) -> dict:
    return {"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"}


@router.get("", response_model=List[DocumentSchema])
async def list_documents(
        folder_id: Optional[int] = None,
        favorites: bool = False,
        owner_id: str = Depends(get_owner_id),
        repository: DocumentRepository = Depends(get_repository)
):
    api_logger.info("Listing documents", extra={
        "owner_id": owner_id,
        "folder_id": folder_id,
        "favorites": favorites
    })
    return await repository.list_documents(owner_id, folder_id, favorites)


@router.post("", response_model=DocumentDetail, status_code=201)
async def create_document(
        name: str = Form(...),
        folder_id: Optional[int] = Form(None),
        files: List[UploadFile] = File(...),
        owner_id: str = Depends(get_owner_id),
        repository: DocumentRepository = Depends(get_repository)
):
    """Create a document from captured or imported images, one page per file in upload order"""
    start_time = time.time()
    api_logger.info("Creating document", extra={
        "owner_id": owner_id,
        "document_name": name,
        "file_count": len(files)
    })

    contents = await read_upload_files(files)
    document = await repository.import_images(owner_id, name, contents, folder_id)

    api_logger.info("Successfully created document", extra={
        "document_id": document.id,
        "page_count": document.page_count,
        "execution_time_ms": round((time.time() - start_time) * 1000, 2)
    })
    return document


@router.get("/{document_id}", response_model=DocumentDetail)
async def get_document(
        document_id: int,
        owner_id: str = Depends(get_owner_id),
        repository: DocumentRepository = Depends(get_repository)
):
    document = await repository.get_document(owner_id, document_id)
    # Verifies the page sequence before it is handed out
    await repository.list_pages(owner_id, document_id)
    return document


@router.put("/{document_id}", response_model=DocumentSchema)
async def update_document(
        document_id: int,
        document: DocumentUpdate,
        owner_id: str = Depends(get_owner_id),
        repository: DocumentRepository = Depends(get_repository)
):
    fields = document.model_dump(exclude_unset=True)
    api_logger.info("Updating document", extra={
        "document_id": document_id,
        "update_fields": sorted(fields)
    })
    return await repository.update_document(owner_id, document_id, fields)


@router.delete("/{document_id}")
async def delete_document(
        document_id: int,
        owner_id: str = Depends(get_owner_id),
        repository: DocumentRepository = Depends(get_repository)
):
    api_logger.info("Deleting document", extra={"document_id": document_id})
    orphaned = await repository.delete_document(owner_id, document_id)
    return {"success": True, "orphaned_blobs": len(orphaned)}


@router.get("/{document_id}/export")
async def export_document(
        document_id: int,
        format: ExportFormat = ExportFormat.PDF,
        owner_id: str = Depends(get_owner_id),
        export_service: ExportService = Depends(get_export_service)
):
    api_logger.info("Starting document export", extra={
        "document_id": document_id,
        "format": format.value
    })

    files = await export_service.export_document(owner_id, document_id, format)
    if len(files) == 1:
        exported = files[0]
        return Response(
            content=exported.content,
            media_type=exported.media_type,
            headers=attachment_headers(exported.filename)
        )

    # One image per page: bundle them so the client gets a single download
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_STORED) as archive:
        for exported in files:
            archive.writestr(exported.filename, exported.content)

    archive_name = f"{files[0].filename.rsplit('_Page', 1)[0]}.zip"
    api_logger.info("Bundled export archive", extra={
        "document_id": document_id,
        "file_count": len(files)
    })
    return Response(
        content=buffer.getvalue(),
        media_type="application/zip",
        headers=attachment_headers(archive_name)
    )


def apply_edit(session: PageEditSession, edit: PageEdit) -> None:
    page_numbers = session.page_numbers if edit.page_number is None else [edit.page_number]

    for page_number in page_numbers:
        if edit.op == "crop":
            session.crop(page_number, Rect(edit.x, edit.y, edit.width, edit.height))
        elif edit.op == "crop_to_aspect":
            session.crop_to_aspect(page_number, edit.aspect)
        elif edit.op == "rotate":
            session.rotate(page_number, edit.degrees)
        elif edit.op == "flip":
            session.flip(page_number, edit.axis)
        elif edit.op == "filter":
            session.apply_filter(page_number, edit.kind, edit.intensity)
        elif edit.op == "adjust":
            session.adjust(page_number, edit.brightness, edit.contrast, edit.saturation)
        elif edit.op == "watermark":
            session.watermark(page_number, WatermarkOptions(
                text=edit.text,
                opacity=edit.opacity,
                relative_size=edit.relative_size,
                angle_degrees=edit.angle_degrees,
                spacing=edit.spacing,
                color=tuple(edit.color)
            ))
        elif edit.op == "annotate":
            session.annotate(page_number, AnnotationOverlay(
                strokes=[
                    Stroke(points=list(s.points), color=tuple(s.color), width=s.width, opacity=s.opacity)
                    for s in edit.strokes
                ],
                redactions=[
                    RedactionBox(rect=Rect(r.x, r.y, r.width, r.height), color=tuple(r.color))
                    for r in edit.redactions
                ]
            ))
        elif edit.op == "revert":
            session.revert(page_number)


@router.post("/{document_id}/edits", response_model=EditResult)
async def edit_document(
        document_id: int,
        request: EditRequest,
        owner_id: str = Depends(get_owner_id),
        repository: DocumentRepository = Depends(get_repository)
):
    """Apply a sequence of page edits and save the pages whose bytes changed"""
    start_time = time.time()
    api_logger.info("Applying document edits", extra={
        "document_id": document_id,
        "edit_count": len(request.edits)
    })

    session = await PageEditSession.open(repository, owner_id, document_id)
    for edit in request.edits:
        apply_edit(session, edit)

    result = await session.save()

    api_logger.info("Saved document edits", extra={
        "document_id": document_id,
        "saved_pages": len(result.saved_page_ids),
        "execution_time_ms": round((time.time() - start_time) * 1000, 2)
    })
    return EditResult(
        document=DocumentSchema.model_validate(result.document),
        saved_page_ids=result.saved_page_ids,
        file_size=result.file_size
    )
