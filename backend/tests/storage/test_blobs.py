# tests/storage/test_blobs.py
import pytest

from axioscan.config import settings
from axioscan.errors import NotFoundError
from axioscan.storage import LocalBlobStore


@pytest.mark.asyncio
async def test_put_and_get(blob_store, temp_storage_dir):
    locator = await blob_store.put(b"page bytes", "image/jpeg")

    assert locator.startswith("blobs/")
    assert locator.endswith(".jpg")
    assert (temp_storage_dir / locator).read_bytes() == b"page bytes"
    assert await blob_store.get(locator) == b"page bytes"


@pytest.mark.asyncio
async def test_every_put_yields_a_new_locator(blob_store):
    first = await blob_store.put(b"same", "image/jpeg")
    second = await blob_store.put(b"same", "image/jpeg")

    assert first != second


@pytest.mark.asyncio
async def test_cache_busting_query_resolves_same_blob(blob_store):
    locator = await blob_store.put(b"content", "image/png")

    assert await blob_store.get(f"{locator}?t=12345", bypass_cache=True) == b"content"


@pytest.mark.asyncio
async def test_bypass_cache_sees_newest_bytes(blob_store, temp_storage_dir):
    locator = await blob_store.put(b"old", "image/jpeg")
    assert await blob_store.get(locator) == b"old"

    # Simulate a write the cache has not observed
    (temp_storage_dir / locator).write_bytes(b"new")

    assert await blob_store.get(locator) == b"old"
    assert await blob_store.get(locator, bypass_cache=True) == b"new"
    assert await blob_store.get(locator) == b"new"


@pytest.mark.asyncio
async def test_cache_is_bounded(temp_storage_dir):
    store = LocalBlobStore(root=temp_storage_dir, cache_size=1)
    first = await store.put(b"1", "image/jpeg")
    second = await store.put(b"2", "image/jpeg")

    await store.get(first)
    await store.get(second)
    (temp_storage_dir / first).write_bytes(b"changed")

    assert await store.get(first) == b"changed"


@pytest.mark.asyncio
async def test_delete(blob_store):
    locator = await blob_store.put(b"content", "image/jpeg")
    await blob_store.get(locator)

    await blob_store.delete(locator)

    with pytest.raises(NotFoundError):
        await blob_store.get(locator)
    with pytest.raises(NotFoundError):
        await blob_store.delete(locator)


@pytest.mark.asyncio
async def test_locators_outside_storage_are_rejected(blob_store):
    with pytest.raises(NotFoundError):
        await blob_store.get("../../etc/passwd")
    with pytest.raises(NotFoundError):
        await blob_store.get("blobs/missing.jpg")


@pytest.mark.asyncio
async def test_default_store_writes_to_configured_blobs_path(temp_storage_dir, monkeypatch):
    blobs_path = temp_storage_dir / "elsewhere"
    monkeypatch.setattr(settings, "BLOBS_PATH", blobs_path)
    store = LocalBlobStore()

    locator = await store.put(b"page bytes", "image/jpeg")

    assert locator.startswith("blobs/")
    assert (blobs_path / locator.split("/", 1)[1]).read_bytes() == b"page bytes"
    assert await store.get(locator, bypass_cache=True) == b"page bytes"
