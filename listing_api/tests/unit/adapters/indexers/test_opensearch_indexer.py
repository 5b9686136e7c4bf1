# listing_api/tests/unit/adapters/indexers/test_opensearch_indexer.py

from unittest.mock import AsyncMock, MagicMock, patch
import pytest
from opensearchpy.exceptions import (
    AuthenticationException,
    ConnectionError as OpenSearchConnectionError,
    NotFoundError,
)

from listing_api.app.adapters.indexers.opensearch_indexer import OpenSearchIndexer
from listing_api.app.domain.models import SearchDocument
from listing_api.app.platform.exceptions import InvalidCredentials, ServiceUnavailable
"""
configure_schema: 인덱스 존재/미존재 분기 (create vs put_mapping)
upsert_one / upsert_many: object_id를 _id로 쓰는지, bulk 에러 집계
delete_one / clear_all: 없는 문서/인덱스는 에러가 아님
예외 변환: 인증 실패 -> InvalidCredentials, 연결 실패 -> ServiceUnavailable
"""


# ----------------------
# 공용 픽스처
# ----------------------
@pytest.fixture
def mock_client():
    """AsyncOpenSearch 목 객체 (indices 네임스페이스 포함)"""
    client = MagicMock()
    client.indices = MagicMock()
    client.indices.exists = AsyncMock()
    client.indices.create = AsyncMock()
    client.indices.put_mapping = AsyncMock()
    client.indices.refresh = AsyncMock()
    client.index = AsyncMock()
    client.delete = AsyncMock()
    client.delete_by_query = AsyncMock()
    return client


@pytest.fixture
def indexer(mock_client):
    return OpenSearchIndexer(client=mock_client, index_name="listings-tools", batch_size=2)


def doc(object_id: str) -> SearchDocument:
    return SearchDocument(object_id=object_id, slug=object_id, name=object_id.upper())


def test_schema_is_loaded_from_resources(indexer: OpenSearchIndexer):
    props = indexer.index_schema["mappings"]["properties"]
    assert props["object_id"]["type"] == "keyword"
    assert props["featured"]["type"] == "boolean"
    assert props["likes"]["type"] == "integer"
    assert "listing_text" in indexer.index_schema["settings"]["analysis"]["analyzer"]


def test_batch_size_is_capped():
    with patch.object(OpenSearchIndexer, "_load_index_schema"):
        inst = OpenSearchIndexer(client=MagicMock(), index_name="x", batch_size=5000)
    assert inst.batch_size == 1000


# ----------------------
# configure_schema
# ----------------------
async def test_configure_creates_index_when_missing(indexer, mock_client):
    mock_client.indices.exists.return_value = False

    await indexer.configure_schema()

    mock_client.indices.exists.assert_awaited_once_with(index="listings-tools")
    mock_client.indices.create.assert_awaited_once_with(index="listings-tools", body=indexer.index_schema)
    mock_client.indices.put_mapping.assert_not_called()


async def test_configure_updates_mappings_when_exists(indexer, mock_client):
    mock_client.indices.exists.return_value = True

    await indexer.configure_schema()
    await indexer.configure_schema()

    mock_client.indices.create.assert_not_called()
    assert mock_client.indices.put_mapping.await_count == 2
    mock_client.indices.put_mapping.assert_awaited_with(
        index="listings-tools", body=indexer.index_schema["mappings"])


async def test_configure_maps_auth_error(indexer, mock_client):
    mock_client.indices.exists.side_effect = AuthenticationException(401, "unauthorized", {})

    with pytest.raises(InvalidCredentials) as ei:
        await indexer.configure_schema()
    assert ei.value.operation == "configure_schema"


# ----------------------
# upsert
# ----------------------
async def test_upsert_one_uses_object_id(indexer, mock_client):
    await indexer.upsert_one(doc("chatgpt-plus"))

    kwargs = mock_client.index.await_args.kwargs
    assert kwargs["index"] == "listings-tools"
    assert kwargs["id"] == "chatgpt-plus"
    assert kwargs["body"]["object_id"] == "chatgpt-plus"


async def test_upsert_one_connection_error(indexer, mock_client):
    mock_client.index.side_effect = OpenSearchConnectionError("N/A", "refused", Exception("refused"))

    with pytest.raises(ServiceUnavailable) as ei:
        await indexer.upsert_one(doc("a"))
    assert ei.value.operation == "upsert_one"
    assert ei.value.object_id == "a"


async def test_upsert_many_chunks_and_collects_errors(indexer):
    calls = []

    async def fake_bulk(client, actions, **kwargs):
        acts = list(actions)
        calls.append((acts, kwargs))
        if len(calls) == 1:
            return len(acts), []
        return 0, [{"index": {"_id": acts[0]["_id"], "error": {"type": "mapper_parsing_exception"}}}]

    with patch("listing_api.app.adapters.indexers.opensearch_indexer.helpers.async_bulk",
               side_effect=fake_bulk):
        result = await indexer.upsert_many([doc("a"), doc("b"), doc("c")])

    # batch_size=2 -> 2번 호출
    assert len(calls) == 2
    assert [a["_id"] for a in calls[0][0]] == ["a", "b"]
    assert calls[0][1]["raise_on_error"] is False
    assert result.indexed == 2
    assert len(result.errors) == 1
    assert result.errors[0].doc_id == "c"
    assert "mapper_parsing_exception" in result.errors[0].reason


async def test_upsert_many_empty(indexer):
    with patch("listing_api.app.adapters.indexers.opensearch_indexer.helpers.async_bulk") as bulk:
        result = await indexer.upsert_many([])
    bulk.assert_not_called()
    assert result.indexed == 0


# ----------------------
# delete
# ----------------------
async def test_delete_missing_document_is_not_error(indexer, mock_client):
    mock_client.delete.side_effect = NotFoundError(404, "not_found", {})

    await indexer.delete_one("ghost")

    mock_client.delete.assert_awaited_once()
    assert mock_client.delete.await_args.kwargs["id"] == "ghost"


async def test_clear_all_missing_index_is_not_error(indexer, mock_client):
    mock_client.delete_by_query.side_effect = NotFoundError(404, "index_not_found_exception", {})

    await indexer.clear_all()

    body = mock_client.delete_by_query.await_args.kwargs["body"]
    assert body == {"query": {"match_all": {}}}
