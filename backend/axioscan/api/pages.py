# backend/axioscan/api/pages.py
from fastapi import APIRouter, Depends, Response

from ..models.page import Page
from ..schemas.page import Page as PageSchema
from ..services import DocumentRepository
from ..utils.logging import api_logger
from .deps import get_owner_id, get_repository

router = APIRouter(prefix="/api/pages", tags=["pages"])

# Page bytes change under new locators; clients must never reuse a cached copy
NO_STORE = {"Cache-Control": "no-store"}


def _media_type(locator: str) -> str:
    return "image/png" if locator.split("?", 1)[0].lower().endswith(".png") else "image/jpeg"


async def _page_bytes_response(repository: DocumentRepository, page: Page, thumbnail: bool) -> Response:
    content = await repository.read_page_bytes(page, thumbnail=thumbnail)
    locator = page.thumbnail_locator if thumbnail and page.thumbnail_locator else page.image_locator
    return Response(content=content, media_type=_media_type(locator), headers=NO_STORE)


@router.get("/{page_id}", response_model=PageSchema)
async def get_page(
        page_id: int,
        owner_id: str = Depends(get_owner_id),
        repository: DocumentRepository = Depends(get_repository)
):
    api_logger.debug("Fetching page", extra={"page_id": page_id})
    return await repository.get_page(owner_id, page_id)


@router.get("/{page_id}/image")
async def get_page_image(
        page_id: int,
        owner_id: str = Depends(get_owner_id),
        repository: DocumentRepository = Depends(get_repository)
):
    page = await repository.get_page(owner_id, page_id)
    return await _page_bytes_response(repository, page, thumbnail=False)


@router.get("/{page_id}/thumbnail")
async def get_page_thumbnail(
        page_id: int,
        owner_id: str = Depends(get_owner_id),
        repository: DocumentRepository = Depends(get_repository)
):
    page = await repository.get_page(owner_id, page_id)
    return await _page_bytes_response(repository, page, thumbnail=True)
