# backend/axioscan/storage/blobs.py
from collections import OrderedDict
from pathlib import Path
from urllib.parse import urlsplit
from uuid import uuid4

from ..config import settings
from ..errors import NotFoundError, RemoteIOError
from ..utils.files import get_relative_path
from ..utils.logging import storage_logger
from .base import BlobStore

LOCATOR_PREFIX = "blobs"

_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "application/pdf": ".pdf",
}


class LocalBlobStore(BlobStore):
    """Blob store on the local filesystem.

    Locators look like ``blobs/<uuid>.jpg`` and are served under
    ``/storage/blobs``. Files live in ``<root>/blobs`` when a root is given,
    otherwise in ``settings.BLOBS_PATH``. Every put writes a new name, so
    replacing page bytes always yields a new locator. Reads go through a
    small LRU cache standing in for the CDN in front of a remote bucket;
    ``bypass_cache`` skips it.
    """

    def __init__(self, root: Path | None = None, cache_size: int | None = None):
        self._root = root
        self._cache_size = cache_size if cache_size is not None else settings.BLOB_CACHE_SIZE
        self._cache: OrderedDict[str, bytes] = OrderedDict()

    @property
    def blobs_dir(self) -> Path:
        if self._root:
            return Path(self._root) / LOCATOR_PREFIX
        return Path(settings.BLOBS_PATH)

    def _path_for(self, locator: str) -> Path:
        # Cache-busting query strings address the same blob
        prefix, _, name = urlsplit(locator).path.lstrip("/").partition("/")
        if prefix != LOCATOR_PREFIX or not name:
            raise NotFoundError(f"Blob locator outside of storage: {locator}")

        blobs_dir = self.blobs_dir.resolve()
        path = (blobs_dir / name).resolve()
        if not path.is_relative_to(blobs_dir):
            raise NotFoundError(f"Blob locator outside of storage: {locator}")
        return path

    @staticmethod
    def _cache_key(locator: str) -> str:
        return urlsplit(locator).path.lstrip("/")

    def _remember(self, key: str, data: bytes) -> None:
        if self._cache_size <= 0:
            return
        self._cache[key] = data
        self._cache.move_to_end(key)
        while len(self._cache) > self._cache_size:
            self._cache.popitem(last=False)

    async def put(self, data: bytes, content_type: str) -> str:
        extension = _EXTENSIONS.get(content_type, ".bin")
        self.blobs_dir.mkdir(parents=True, exist_ok=True)
        file_path = self.blobs_dir / f"{uuid4()}{extension}"

        try:
            file_path.write_bytes(data)
        except OSError as e:
            storage_logger.error("Failed to write blob", extra={
                "path": str(file_path),
                "error": str(e)
            })
            raise RemoteIOError(f"Failed to store blob: {e}") from e

        locator = f"{LOCATOR_PREFIX}/{get_relative_path(file_path, self.blobs_dir)}"
        storage_logger.debug("Stored blob", extra={
            "locator": locator,
            "content_type": content_type,
            "size": len(data)
        })
        return locator

    async def get(self, locator: str, bypass_cache: bool = False) -> bytes:
        key = self._cache_key(locator)
        if not bypass_cache and key in self._cache:
            self._cache.move_to_end(key)
            return self._cache[key]

        path = self._path_for(locator)
        try:
            data = path.read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError(f"Blob not found: {locator}") from e
        except OSError as e:
            storage_logger.error("Failed to read blob", extra={
                "locator": locator,
                "error": str(e)
            })
            raise RemoteIOError(f"Failed to read blob {locator}: {e}") from e

        self._remember(key, data)
        return data

    async def delete(self, locator: str) -> None:
        path = self._path_for(locator)
        self._cache.pop(self._cache_key(locator), None)
        try:
            path.unlink()
        except FileNotFoundError as e:
            raise NotFoundError(f"Blob not found: {locator}") from e
        except OSError as e:
            raise RemoteIOError(f"Failed to delete blob {locator}: {e}") from e

        storage_logger.debug("Deleted blob", extra={"locator": locator})


blob_store = LocalBlobStore()
