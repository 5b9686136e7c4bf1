from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, MagicMock
import pytest

from listing_api.app.main import app
from listing_api.app.api.deps import get_pipeline_resolver
from listing_api.app.domain.models import EntityKind, IndexErrorItem, IndexResult
from listing_api.app.platform.config import settings
from listing_api.app.platform.exceptions import InvalidCredentials, ServiceUnavailable


class DummyResolver:
    """routers.index 에서 resolver.for_kind(EntityKind)로 서비스 반환을 흉내내는 간단한 mockup"""
    def __init__(self, mapping):
        self._mapping = mapping

    def for_kind(self, kind: EntityKind):
        return self._mapping[kind]


@pytest.fixture
def client():
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def svc_tools():
    m = MagicMock()
    m.configure = AsyncMock(return_value=True)
    m.rebuild_all = AsyncMock(return_value=IndexResult(indexed=12))
    return m


@pytest.fixture
def svc_news():
    m = MagicMock()
    m.configure = AsyncMock(return_value=False)
    m.rebuild_all = AsyncMock(return_value=IndexResult(
        indexed=3, errors=[IndexErrorItem(doc_id="n1", reason="mapper_parsing_exception")]))
    return m


@pytest.fixture(autouse=True)
def override_resolver(svc_tools, svc_news, monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", None)
    resolver = DummyResolver({EntityKind.tools: svc_tools, EntityKind.news: svc_news})
    app.dependency_overrides[get_pipeline_resolver] = lambda: resolver
    yield
    app.dependency_overrides.clear()


def test_configure(client, svc_tools):
    r = client.post("/api/index/tools/configure")

    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["data"] == {"kind": "tools", "configured": True}
    svc_tools.configure.assert_awaited_once()


def test_configure_without_backend(client):
    r = client.post("/api/index/news/configure")

    assert r.status_code == 200
    assert r.json()["data"]["configured"] is False


def test_rebuild(client, svc_tools):
    r = client.post("/api/index/tools/rebuild")

    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["data"]["indexed"] == 12
    assert body["data"]["errors"] == []


def test_rebuild_with_errors(client):
    r = client.post("/api/index/news/rebuild")

    body = r.json()
    assert body["success"] is False
    assert body["data"]["errors"][0]["doc_id"] == "n1"


def test_rebuild_backend_unavailable_returns_503(client, svc_tools):
    svc_tools.rebuild_all.side_effect = ServiceUnavailable("clear_all", "connection refused")

    r = client.post("/api/index/tools/rebuild")

    assert r.status_code == 503
    assert r.json()["error"]["code"] == "SEARCH_UNAVAILABLE"


def test_configure_bad_credentials_returns_503(client, svc_tools):
    svc_tools.configure.side_effect = InvalidCredentials("configure_schema", "401 unauthorized")

    r = client.post("/api/index/tools/configure")

    assert r.status_code == 503
    assert r.json()["error"]["code"] == "SEARCH_CREDENTIALS_REJECTED"


def test_index_requires_api_key(client, monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", "secret")

    r = client.post("/api/index/tools/rebuild", headers={"X-API-Key": "wrong"})

    assert r.status_code == 401
