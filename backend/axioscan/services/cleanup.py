# backend/axioscan/services/cleanup.py
from typing import Iterable, List

from ..errors import NotFoundError, RemoteIOError
from ..storage.base import BlobStore
from ..utils.logging import service_logger


class CleanupService:
    """Best-effort removal of blobs that no record references anymore"""

    @staticmethod
    async def delete_blobs(blob_store: BlobStore, locators: Iterable[str]) -> List[str]:
        """Delete each blob; return the locators that could not be removed (orphans)"""
        orphaned = []
        deleted = 0
        for locator in locators:
            try:
                await blob_store.delete(locator)
                deleted += 1
            except NotFoundError:
                service_logger.debug(f"Blob already gone: {locator}")
            except RemoteIOError as e:
                orphaned.append(locator)
                service_logger.warning(f"Leaving orphaned blob: {locator}", extra={
                    "locator": locator,
                    "error": str(e)
                })

        service_logger.info("Blob cleanup finished", extra={
            "deleted": deleted,
            "orphaned": len(orphaned)
        })
        return orphaned


cleanup_service = CleanupService()
