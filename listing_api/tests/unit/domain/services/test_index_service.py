# listing_api/tests/unit/domain/services/test_index_service.py

import pytest

from listing_api.app.adapters.transformers.listing_transformer import ListingTransformer
from listing_api.app.domain.models import EntityKind
from listing_api.app.domain.services.index_service import IndexService
from listing_api.app.platform.exceptions import ResourceNotFound, ServiceUnavailable
"""
sync_one/sync_batch
    같은 레코드 두 번 -> 문서 1개, 두 번째는 updated
    레코드 1건 실패(검증/인덱스)가 배치를 멈추지 않음
    승인 해제된 행은 인덱스에서 삭제
rebuild_all
    clear_all 후 승인된 행만 batch 단위로 upsert_many
apply_approval / remove
    인덱스 반영, 없는 slug는 ResourceNotFound
indexer 없음
    DB만 갱신
"""


# ---------------------------
# Helpers
# ---------------------------
def tool_row(name: str, **kw) -> dict:
    row = {"name": name, "url": f"https://example.com/{name}", "isApproved": "true"}
    row.update(kw)
    return row


@pytest.fixture
def svc(tool_store, fake_index):
    return IndexService(EntityKind.tools, tool_store, ListingTransformer(), fake_index, batch_size=2)


# ---------------------------
# sync
# ---------------------------
async def test_sync_one_is_idempotent(svc, fake_index, tool_store):
    """같은 입력을 두 번 넣으면 문서는 1개, 두 번째 결과는 updated 1"""
    first = await svc.sync_one(tool_row("ChatGPT Plus", slug="chatgpt-plus"))
    second = await svc.sync_one(tool_row("ChatGPT Plus", slug="chatgpt-plus"))

    assert (first.inserted, first.updated) == (1, 0)
    assert (second.inserted, second.updated) == (0, 1)
    assert list(fake_index.docs) == ["chatgpt-plus"]
    assert len(await tool_store.list_approved()) == 1


async def test_sync_without_slug_uses_name_derived_key(svc, fake_index, tool_store):
    await svc.sync_one(tool_row("My Cool Tool!!"))
    result = await svc.sync_one(tool_row("My Cool Tool!!", description="changed"))

    assert result.updated == 1
    assert list(fake_index.docs) == ["my-cool-tool"]
    assert (await tool_store.get_by_slug("my-cool-tool")).description == "changed"


async def test_sync_batch_isolates_invalid_record(news_store, fake_index):
    """5건 중 3번째가 title 누락이면 total=5, inserted=4, errors=1 이고 4,5번째도 처리된다"""
    svc = IndexService(EntityKind.news, news_store, ListingTransformer(), fake_index)
    items = [
        {"title": f"News {i}", "sourceUrl": f"https://n.example/{i}", "isPublished": "true"}
        for i in range(1, 6)
    ]
    del items[2]["title"]

    result = await svc.sync_batch(items)

    assert result.total == 5
    assert result.inserted == 4
    assert result.updated == 0
    assert result.errors == 1
    assert result.rejected == 1
    assert result.error_messages[0].startswith("#3: ")
    assert "title" in result.error_messages[0]
    assert sorted(fake_index.docs) == ["news-1", "news-2", "news-4", "news-5"]


async def test_sync_batch_isolates_index_failure(svc, fake_index, tool_store):
    """인덱스 실패는 해당 레코드만 에러로 남고 DB 쓰기는 유지된다"""
    fake_index.fail_with = ServiceUnavailable("upsert_one", "connection refused", "b")
    fake_index.fail_ids = {"b"}

    result = await svc.sync_batch([tool_row("a"), tool_row("b"), tool_row("c")])

    assert result.total == 3
    assert result.inserted == 2
    assert result.errors == 1
    assert result.rejected == 0
    assert result.error_messages[0].startswith("b: ")
    assert sorted(fake_index.docs) == ["a", "c"]
    assert await tool_store.get_by_slug("b") is not None


async def test_sync_batch_isolates_unexpected_error(svc, tool_store, monkeypatch):
    original_insert = tool_store.insert

    async def flaky_insert(values):
        if values["slug"] == "boom":
            raise RuntimeError("disk full")
        return await original_insert(values)

    monkeypatch.setattr(tool_store, "insert", flaky_insert)

    result = await svc.sync_batch([tool_row("boom"), tool_row("fine")])

    assert result.inserted == 1
    assert result.error_messages == ["boom: disk full"]


async def test_sync_non_object_record(svc):
    result = await svc.sync_batch(["oops", tool_row("ok")])
    assert result.errors == 1
    assert result.inserted == 1
    assert result.error_messages[0] == "#1: record must be an object"


async def test_unapproved_record_is_removed_from_index(svc, fake_index):
    await svc.sync_one(tool_row("x"))
    assert "x" in fake_index.docs

    result = await svc.sync_one(tool_row("x", isApproved="false"))

    assert result.updated == 1
    assert "x" not in fake_index.docs
    assert fake_index.calls["delete_one"] == 1


async def test_sync_without_indexer_updates_store_only(tool_store):
    svc = IndexService(EntityKind.tools, tool_store, ListingTransformer(), indexer=None)

    result = await svc.sync_batch([tool_row("a")])

    assert result.success
    assert result.inserted == 1
    assert await tool_store.get_by_slug("a") is not None


# ---------------------------
# configure / rebuild
# ---------------------------
async def test_configure(svc, fake_index, tool_store):
    assert await svc.configure() is True
    assert fake_index.calls["configure_schema"] == 1

    no_index = IndexService(EntityKind.tools, tool_store, ListingTransformer(), None)
    assert await no_index.configure() is False


async def test_rebuild_all_indexes_only_approved_in_batches(svc, fake_index, tool_store):
    for name in ("a", "b", "c"):
        await tool_store.insert({"slug": name, "name": name, "is_approved": True})
    await tool_store.insert({"slug": "hidden", "name": "hidden", "is_approved": False})
    fake_index.docs["stale"] = None  # 재색인 전 남아있던 문서

    result = await svc.rebuild_all()

    assert result.indexed == 3
    assert fake_index.calls["clear_all"] == 1
    # batch_size=2 -> 2번
    assert fake_index.calls["upsert_many"] == 2
    assert sorted(fake_index.docs) == ["a", "b", "c"]


async def test_rebuild_without_indexer(tool_store):
    svc = IndexService(EntityKind.tools, tool_store, ListingTransformer(), None)
    result = await svc.rebuild_all()
    assert result.indexed == 0


def test_batch_size_is_capped(tool_store):
    svc = IndexService(EntityKind.tools, tool_store, ListingTransformer(), None, batch_size=10_000)
    assert svc.batch_size == 1000


# ---------------------------
# moderation hooks
# ---------------------------
async def test_apply_approval_toggles_index(svc, fake_index):
    await svc.sync_one(tool_row("m", isApproved="false"))
    assert "m" not in fake_index.docs

    item = await svc.apply_approval("m", True)
    assert item.is_approved is True
    assert "m" in fake_index.docs

    await svc.apply_approval("m", False)
    assert "m" not in fake_index.docs


async def test_remove_deletes_row_and_document(svc, fake_index, tool_store):
    await svc.sync_one(tool_row("gone"))

    await svc.remove("gone")

    assert "gone" not in fake_index.docs
    assert await tool_store.get_by_slug("gone") is None
    with pytest.raises(ResourceNotFound):
        await svc.remove("gone")


async def test_resync_keeps_moderated_approval_and_missing_columns(svc, fake_index, tool_store):
    """승인 후 승인 컬럼/설명 없이 다시 동기화해도 승인 상태와 설명이 유지된다"""
    await svc.sync_one({"name": "Writer", "url": "https://w.example", "description": "AI writer"})
    assert "writer" not in fake_index.docs

    await svc.apply_approval("writer", True)
    result = await svc.sync_one({"name": "Writer", "url": "https://w.example/v2"})

    assert result.updated == 1
    row = await tool_store.get_by_slug("writer")
    assert row.is_approved is True
    assert row.description == "AI writer"
    assert row.website == "https://w.example/v2"
    assert fake_index.docs["writer"].website == "https://w.example/v2"


async def test_remove_keeps_row_when_index_delete_fails(svc, fake_index, tool_store):
    """인덱스 삭제가 실패하면 행을 남겨서 재시도할 수 있게 한다"""
    await svc.sync_one(tool_row("sticky"))
    fake_index.fail_with = ServiceUnavailable("delete_one", "connection refused", "sticky")

    with pytest.raises(ServiceUnavailable):
        await svc.remove("sticky")
    assert await tool_store.get_by_slug("sticky") is not None

    fake_index.fail_with = None
    await svc.remove("sticky")
    assert await tool_store.get_by_slug("sticky") is None
    assert "sticky" not in fake_index.docs
