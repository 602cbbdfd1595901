# tests/services/test_repository.py
import asyncio

import pytest

from axioscan.errors import (
    ConsistencyViolation,
    EmptySelectionError,
    ImageCodecError,
    InvalidArgument,
    NotFoundError,
    RemoteIOError,
)
from axioscan.imaging import decode_image
from axioscan.services import DocumentRepository
from axioscan.services.repository import encode_page
from axioscan.storage import PageLocatorUpdate, SqlRecordStore
from conftest import PALETTE, assert_color_close, center_color, image_bytes, make_image


class FailingCreateRecordStore(SqlRecordStore):
    async def create_documents(self, owner_id, documents):
        raise RemoteIOError("record store unavailable")


class CancelledCreateRecordStore(SqlRecordStore):
    async def create_documents(self, owner_id, documents):
        raise asyncio.CancelledError()


@pytest.mark.asyncio
async def test_create_document_numbers_pages_and_caches_counts(repository, make_document, temp_storage_dir):
    document = await make_document(page_count=3)

    pages = await repository.list_pages(document.owner_id, document.id)
    assert document.page_count == 3
    assert [page.page_number for page in pages] == [1, 2, 3]
    assert document.file_size == sum((temp_storage_dir / page.image_locator).stat().st_size for page in pages)
    assert all(page.thumbnail_locator and page.thumbnail_locator != page.image_locator for page in pages)


@pytest.mark.asyncio
async def test_created_pages_keep_capture_order(repository, make_document, owner_id):
    document = await make_document(page_count=3)

    loaded = await repository.load_page_images(owner_id, document.id)

    for item, color in zip(loaded, PALETTE):
        assert_color_close(center_color(item.image), color)


@pytest.mark.asyncio
async def test_create_document_requires_pages_and_name(repository, owner_id):
    with pytest.raises(EmptySelectionError):
        await repository.create_document(owner_id, "Empty", [])
    with pytest.raises(InvalidArgument):
        await repository.create_document(owner_id, "   ", [make_image()])


@pytest.mark.asyncio
async def test_failed_record_write_removes_uploaded_blobs(blob_store, db_session, owner_id, temp_storage_dir):
    repository = DocumentRepository(blob_store, FailingCreateRecordStore(db_session))

    with pytest.raises(RemoteIOError):
        await repository.create_document(owner_id, "Doomed", [make_image(), make_image()])

    assert list((temp_storage_dir / "blobs").iterdir()) == []


@pytest.mark.asyncio
async def test_cancelled_record_write_removes_uploaded_blobs(blob_store, db_session, owner_id, temp_storage_dir):
    repository = DocumentRepository(blob_store, CancelledCreateRecordStore(db_session))

    with pytest.raises(asyncio.CancelledError):
        await repository.create_document(owner_id, "Interrupted", [make_image(), make_image()])

    assert list((temp_storage_dir / "blobs").iterdir()) == []
    assert await repository.list_documents(owner_id) == []


@pytest.mark.asyncio
async def test_create_documents_from_encoded_is_all_or_nothing(blob_store, db_session, owner_id, temp_storage_dir):
    repository = DocumentRepository(blob_store, FailingCreateRecordStore(db_session))
    parts = [("Part 1", [encode_page(make_image())]), ("Part 2", [encode_page(make_image())])]

    with pytest.raises(RemoteIOError):
        await repository.create_documents_from_encoded(owner_id, parts)

    assert list((temp_storage_dir / "blobs").iterdir()) == []
    assert await repository.list_documents(owner_id) == []


@pytest.mark.asyncio
async def test_create_documents_from_encoded_numbers_each_document(repository, owner_id):
    parts = [
        ("Part 1", [encode_page(make_image(PALETTE[0]))]),
        ("Part 2", [encode_page(make_image(PALETTE[1])), encode_page(make_image(PALETTE[2]))]),
    ]

    documents = await repository.create_documents_from_encoded(owner_id, parts)

    assert [document.name for document in documents] == ["Part 1", "Part 2"]
    second = await repository.load_page_images(owner_id, documents[1].id)
    assert [item.page.page_number for item in second] == [1, 2]
    assert_color_close(center_color(second[0].image), PALETTE[1])
    assert_color_close(center_color(second[1].image), PALETTE[2])


@pytest.mark.asyncio
async def test_import_images_rejects_unreadable_files(repository, owner_id):
    with pytest.raises(ImageCodecError):
        await repository.import_images(owner_id, "Import", [image_bytes(make_image()), b"garbage"])

    document = await repository.import_images(owner_id, "Import", [image_bytes(make_image())])
    assert document.page_count == 1


@pytest.mark.asyncio
async def test_get_document_for_other_owner_is_not_found(repository, make_document, other_owner_id):
    document = await make_document(page_count=1)

    with pytest.raises(NotFoundError):
        await repository.get_document(other_owner_id, document.id)


@pytest.mark.asyncio
async def test_list_pages_detects_page_count_mismatch(repository, record_store, make_document, owner_id):
    document = await make_document(page_count=2)
    await record_store.update_document(owner_id, document.id, {"page_count": 3})

    with pytest.raises(ConsistencyViolation):
        await repository.list_pages(owner_id, document.id)


@pytest.mark.asyncio
async def test_update_document_bumps_updated_at(repository, make_document, owner_id):
    document = await make_document(page_count=1)
    before = document.updated_at

    updated = await repository.update_document(owner_id, document.id, {"name": " Renamed ", "is_favorite": True})

    assert updated.name == "Renamed"
    assert updated.is_favorite is True
    assert updated.updated_at >= before


@pytest.mark.asyncio
async def test_update_document_folder_must_belong_to_owner(repository, make_document, owner_id, other_owner_id):
    document = await make_document(page_count=1)
    foreign = await repository.create_folder(other_owner_id, "Theirs")
    mine = await repository.create_folder(owner_id, "Mine")

    with pytest.raises(InvalidArgument):
        await repository.update_document(owner_id, document.id, {"folder_id": foreign.id})

    moved = await repository.update_document(owner_id, document.id, {"folder_id": mine.id})
    assert moved.folder_id == mine.id


@pytest.mark.asyncio
async def test_delete_document_removes_records_and_blobs(repository, make_document, owner_id, temp_storage_dir):
    document = await make_document(page_count=2)

    orphaned = await repository.delete_document(owner_id, document.id)

    assert orphaned == []
    assert list((temp_storage_dir / "blobs").iterdir()) == []
    with pytest.raises(NotFoundError):
        await repository.get_document(owner_id, document.id)


@pytest.mark.asyncio
async def test_load_page_images_skips_undecodable_pages(repository, make_document, owner_id, corrupt_blob):
    document = await make_document(page_count=3)
    pages = await repository.list_pages(owner_id, document.id)
    corrupt_blob(pages[1].image_locator)

    loaded = await repository.load_page_images(owner_id, document.id)

    assert [item.page.page_number for item in loaded] == [1, 3]


@pytest.mark.asyncio
async def test_read_page_bytes_bypasses_cache(repository, blob_store, make_document, owner_id, temp_storage_dir):
    document = await make_document(page_count=1)
    page = (await repository.list_pages(owner_id, document.id))[0]
    await blob_store.get(page.image_locator)

    replacement = image_bytes(make_image(PALETTE[2]), "JPEG")
    (temp_storage_dir / page.image_locator).write_bytes(replacement)

    assert await repository.read_page_bytes(page) == replacement
    thumbnail = decode_image(await repository.read_page_bytes(page, thumbnail=True))
    assert max(thumbnail.size) <= 300


@pytest.mark.asyncio
async def test_commit_page_updates_writes_pages_then_document(repository, make_document, owner_id):
    document = await make_document(page_count=2)
    page = (await repository.list_pages(owner_id, document.id))[0]
    content = await repository.upload_page_content(owner_id, document.id, page, make_image(PALETTE[4]))

    updated = await repository.commit_page_updates(owner_id, document.id, [
        PageLocatorUpdate(page.id, content.image_locator, content.thumbnail_locator)
    ], file_size=1234)

    assert updated.file_size == 1234
    reloaded = await repository.get_page(owner_id, page.id)
    assert reloaded.image_locator == content.image_locator


@pytest.mark.asyncio
async def test_folders_cannot_nest_inside_themselves(repository, owner_id):
    parent = await repository.create_folder(owner_id, "Parent")
    child = await repository.create_folder(owner_id, "Child", parent.id)

    with pytest.raises(InvalidArgument):
        await repository.update_folder(owner_id, parent.id, {"parent_id": child.id})
    with pytest.raises(InvalidArgument):
        await repository.update_folder(owner_id, parent.id, {"parent_id": parent.id})
    with pytest.raises(InvalidArgument):
        await repository.create_folder(owner_id, "Orphan", 9999)


@pytest.mark.asyncio
async def test_tagging_through_repository(repository, make_document, owner_id):
    document = await make_document(page_count=1)
    tag = await repository.create_tag(owner_id, "Tax", "#00AA00")

    await repository.tag_document(owner_id, document.id, tag.id)
    assert [t.name for t in (await repository.get_document(owner_id, document.id)).tags] == ["Tax"]

    await repository.untag_document(owner_id, document.id, tag.id)
    assert (await repository.get_document(owner_id, document.id)).tags == []
