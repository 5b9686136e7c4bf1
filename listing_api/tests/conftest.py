import sys
from pathlib import Path

# 프로젝트 루트 경로를 sys.path에 추가 (…/<project-root>)
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
from fastapi.testclient import TestClient
from listing_api.app.main import app
from listing_api.app.adapters.stores.database import build_sessionmaker, init_schema
from listing_api.app.adapters.stores.sql_listing_store import SqlListingStore
from listing_api.app.domain.models import EntityKind, IndexResult, SearchDocument, SearchPage
from listing_api.app.platform.exceptions import SearchBackendError
from sqlalchemy.ext.asyncio import create_async_engine


class InMemoryIndex:
    """
    IndexPort 테스트 더블. object_id -> SearchDocument 딕셔너리로 인덱스를 흉내내고 호출 횟수를 센다.
    fail_with에 예외를 넣으면 모든 쓰기 호출이 그 예외를 던진다.
    """
    def __init__(self):
        self.docs: dict[str, SearchDocument] = {}
        self.calls: dict[str, int] = {}
        self.fail_with: Exception | None = None
        self.fail_ids: set[str] = set()

    def _track(self, name: str, object_id: str | None = None):
        self.calls[name] = self.calls.get(name, 0) + 1
        if self.fail_with is not None and (not self.fail_ids or object_id in self.fail_ids):
            raise self.fail_with

    async def configure_schema(self) -> None:
        self._track("configure_schema")

    async def upsert_one(self, doc: SearchDocument) -> None:
        self._track("upsert_one", doc.object_id)
        self.docs[doc.object_id] = doc

    async def upsert_many(self, docs) -> IndexResult:
        self._track("upsert_many")
        for d in docs:
            self.docs[d.object_id] = d
        return IndexResult(indexed=len(docs))

    async def delete_one(self, object_id: str) -> None:
        self._track("delete_one", object_id)
        self.docs.pop(object_id, None)

    async def clear_all(self) -> None:
        self._track("clear_all")
        self.docs.clear()


class FakeSearcher:
    """SearchPort 테스트 더블. outcome에 SearchPage 또는 SearchBackendError를 넣는다."""
    def __init__(self, outcome: SearchPage | SearchBackendError | None = None):
        self.outcome = outcome if outcome is not None else SearchPage()
        self.calls: list[dict] = []

    async def query(self, text, page=0, page_size=20, filters=None, facet_filters=None) -> SearchPage:
        result = await self.try_query(text, page, page_size, filters, facet_filters)
        if isinstance(result, SearchBackendError):
            raise result
        return result

    async def try_query(self, text, page=0, page_size=20, filters=None, facet_filters=None):
        self.calls.append({
            "text": text, "page": page, "page_size": page_size,
            "filters": filters, "facet_filters": facet_filters,
        })
        return self.outcome


@pytest.fixture
def client():
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
async def sessionmaker(tmp_path):
    """파일 기반 SQLite(aiosqlite) 세션 팩토리. 테스트마다 새 DB."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'listings.db'}")
    await init_schema(engine)
    yield build_sessionmaker(engine)
    await engine.dispose()


@pytest.fixture
def tool_store(sessionmaker):
    return SqlListingStore(sessionmaker, EntityKind.tools)


@pytest.fixture
def news_store(sessionmaker):
    return SqlListingStore(sessionmaker, EntityKind.news)


@pytest.fixture
def fake_index():
    return InMemoryIndex()
