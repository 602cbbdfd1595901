# tests/services/test_merge.py
import pytest

from axioscan.errors import EmptySelectionError, InsufficientInputError, InvalidArgument
from axioscan.services import MergeService
from conftest import PALETTE, assert_color_close, center_color


@pytest.fixture
def merge_service(repository):
    return MergeService(repository)


async def page_colors(repository, owner_id, document_id):
    loaded = await repository.load_page_images(owner_id, document_id)
    return [center_color(item.image) for item in loaded]


@pytest.mark.asyncio
async def test_merge_keeps_document_then_page_order(merge_service, repository, make_document, owner_id):
    first = await make_document(page_count=2, name="A", colors=[PALETTE[0], PALETTE[1]])
    second = await make_document(page_count=1, name="B", colors=[PALETTE[2]])

    merged = await merge_service.merge(owner_id, [first.id, second.id])

    pages = await repository.list_pages(owner_id, merged.id)
    assert merged.page_count == 3
    assert [page.page_number for page in pages] == [1, 2, 3]
    for actual, expected in zip(await page_colors(repository, owner_id, merged.id), PALETTE[:3]):
        assert_color_close(actual, expected)
    assert merged.name.startswith("Merged Document ")


@pytest.mark.asyncio
async def test_removing_a_page_before_commit(merge_service, repository, make_document, owner_id):
    first = await make_document(page_count=2, colors=[PALETTE[0], PALETTE[1]])
    second = await make_document(page_count=1, colors=[PALETTE[2]])

    plan = await merge_service.load_pages(owner_id, [first.id, second.id])
    removed = plan.remove(1)
    merged = await merge_service.commit(owner_id, plan, name="Combined")

    assert removed.source_document_id == first.id
    assert merged.page_count == 2
    assert merged.name == "Combined"
    colors = await page_colors(repository, owner_id, merged.id)
    assert_color_close(colors[0], PALETTE[0])
    assert_color_close(colors[1], PALETTE[2])


@pytest.mark.asyncio
async def test_reordering_before_commit(merge_service, repository, make_document, owner_id):
    first = await make_document(page_count=2, colors=[PALETTE[0], PALETTE[1]])
    second = await make_document(page_count=1, colors=[PALETTE[2]])

    plan = await merge_service.load_pages(owner_id, [first.id, second.id])
    plan.move(2, 0)
    merged = await merge_service.commit(owner_id, plan)

    colors = await page_colors(repository, owner_id, merged.id)
    for actual, expected in zip(colors, [PALETTE[2], PALETTE[0], PALETTE[1]]):
        assert_color_close(actual, expected)

    arranged = await merge_service.merge(owner_id, [first.id, second.id], order=[1, 2])
    assert arranged.page_count == 2


@pytest.mark.asyncio
async def test_merge_leaves_sources_untouched(merge_service, repository, make_document, owner_id):
    first = await make_document(page_count=2)
    second = await make_document(page_count=1)
    first_locators = [page.image_locator for page in await repository.list_pages(owner_id, first.id)]

    await merge_service.merge(owner_id, [first.id, second.id])

    assert (await repository.get_document(owner_id, first.id)).page_count == 2
    assert [page.image_locator for page in await repository.list_pages(owner_id, first.id)] == first_locators
    assert (await repository.get_document(owner_id, second.id)).page_count == 1


@pytest.mark.asyncio
async def test_merge_needs_two_distinct_documents(merge_service, make_document, owner_id):
    document = await make_document(page_count=1)

    with pytest.raises(InsufficientInputError):
        await merge_service.load_pages(owner_id, [document.id])
    with pytest.raises(InsufficientInputError):
        await merge_service.load_pages(owner_id, [document.id, document.id])


@pytest.mark.asyncio
async def test_empty_plan_cannot_be_committed(merge_service, make_document, owner_id):
    first = await make_document(page_count=1)
    second = await make_document(page_count=1)

    plan = await merge_service.load_pages(owner_id, [first.id, second.id])
    plan.remove(0)
    plan.remove(0)

    with pytest.raises(EmptySelectionError):
        await merge_service.commit(owner_id, plan)


@pytest.mark.asyncio
async def test_merge_skips_undecodable_pages(merge_service, repository, make_document, owner_id, corrupt_blob):
    first = await make_document(page_count=2)
    second = await make_document(page_count=1)
    corrupt_blob((await repository.list_pages(owner_id, first.id))[0].image_locator)

    merged = await merge_service.merge(owner_id, [first.id, second.id])

    assert merged.page_count == 2


@pytest.mark.asyncio
async def test_plan_positions_are_validated(merge_service, make_document, owner_id):
    first = await make_document(page_count=1)
    second = await make_document(page_count=1)
    plan = await merge_service.load_pages(owner_id, [first.id, second.id])

    with pytest.raises(InvalidArgument):
        plan.move(0, 5)
    with pytest.raises(InvalidArgument):
        plan.arrange([0, 0])
