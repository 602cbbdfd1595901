# tests/services/test_split.py
import pytest

from axioscan.errors import EmptySelectionError, InvalidArgument, RemoteIOError
from axioscan.services import DocumentRepository, SplitService
from axioscan.storage import SqlRecordStore
from conftest import PALETTE, assert_color_close, center_color


@pytest.fixture
def split_service(repository):
    return SplitService(repository)


@pytest.mark.asyncio
async def test_extract_keeps_original_page_order(split_service, repository, make_document, owner_id):
    source = await make_document(page_count=5, name="Contract")
    pages = await repository.list_pages(owner_id, source.id)

    # Selection order is page 4 then page 2
    extracted = await split_service.extract(owner_id, source.id, [pages[3].id, pages[1].id])

    assert extracted.page_count == 2
    assert [page.page_number for page in await repository.list_pages(owner_id, extracted.id)] == [1, 2]
    loaded = await repository.load_page_images(owner_id, extracted.id)
    assert_color_close(center_color(loaded[0].image), PALETTE[1])
    assert_color_close(center_color(loaded[1].image), PALETTE[3])
    assert extracted.name.startswith("Contract - Extracted ")

    assert (await repository.get_document(owner_id, source.id)).page_count == 5
    assert len(await repository.list_pages(owner_id, source.id)) == 5


@pytest.mark.asyncio
async def test_extract_validates_selection(split_service, repository, make_document, owner_id):
    source = await make_document(page_count=2)
    other = await make_document(page_count=1)
    foreign_page = (await repository.list_pages(owner_id, other.id))[0]

    with pytest.raises(EmptySelectionError):
        await split_service.extract(owner_id, source.id, [])
    with pytest.raises(InvalidArgument):
        await split_service.extract(owner_id, source.id, [foreign_page.id])


@pytest.mark.asyncio
async def test_split_creates_one_document_per_group(split_service, repository, make_document, owner_id):
    source = await make_document(page_count=5, name="Bundle")
    pages = await repository.list_pages(owner_id, source.id)

    documents = await split_service.split(owner_id, source.id, [[pages[0].id], [pages[4].id, pages[2].id], []])

    assert [document.page_count for document in documents] == [1, 2]
    assert [document.name for document in documents] == ["Bundle - Part 1", "Bundle - Part 2"]
    loaded = await repository.load_page_images(owner_id, documents[1].id)
    assert_color_close(center_color(loaded[0].image), PALETTE[2])
    assert_color_close(center_color(loaded[1].image), PALETTE[4])


@pytest.mark.asyncio
async def test_split_validates_every_group_first(split_service, repository, make_document, owner_id):
    source = await make_document(page_count=2)
    pages = await repository.list_pages(owner_id, source.id)
    before = len(await repository.list_documents(owner_id))

    with pytest.raises(InvalidArgument):
        await split_service.split(owner_id, source.id, [[pages[0].id], [9999]])
    with pytest.raises(EmptySelectionError):
        await split_service.split(owner_id, source.id, [[], []])

    assert len(await repository.list_documents(owner_id)) == before


class SecondPartFailsRecordStore(SqlRecordStore):
    """Gives the second document a duplicate page number so the batch write hits a constraint"""

    async def create_documents(self, owner_id, documents):
        if len(documents) > 1:
            draft, pages = documents[1]
            documents = [documents[0], (draft, pages + [pages[0]])] + list(documents[2:])
        return await super().create_documents(owner_id, documents)


@pytest.mark.asyncio
async def test_split_persists_no_part_when_a_later_part_fails(
        blob_store, db_session, repository, make_document, owner_id, temp_storage_dir
):
    source = await make_document(page_count=2, name="Pair")
    pages = await repository.list_pages(owner_id, source.id)
    documents_before = len(await repository.list_documents(owner_id))
    blobs_before = sorted((temp_storage_dir / "blobs").iterdir())
    failing = SplitService(DocumentRepository(blob_store, SecondPartFailsRecordStore(db_session)))

    with pytest.raises(RemoteIOError):
        await failing.split(owner_id, source.id, [[pages[0].id], [pages[1].id]])

    assert len(await repository.list_documents(owner_id)) == documents_before
    assert sorted((temp_storage_dir / "blobs").iterdir()) == blobs_before
