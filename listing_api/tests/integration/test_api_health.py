from fastapi.testclient import TestClient
import pytest

from listing_api.app.main import app
from listing_api.app.api.deps import get_opensearch


@pytest.fixture
def client():
    return TestClient(app, raise_server_exceptions=False)


def test_health_database_only(client):
    """OpenSearch 클라이언트가 없으면 database 백엔드로 보고"""
    app.dependency_overrides[get_opensearch] = lambda: None
    try:
        resp = client.get("/health")
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "search_backend": "database"}


def test_health_opensearch(client):
    app.dependency_overrides[get_opensearch] = lambda: object()
    try:
        resp = client.get("/health")
    finally:
        app.dependency_overrides.clear()

    assert resp.json()["search_backend"] == "opensearch"


def test_request_id_is_echoed(client):
    resp = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"


def test_unknown_route_uses_error_envelope(client):
    resp = client.get("/nope")
    assert resp.status_code == 404
    body = resp.json()
    assert body["success"] is False
    assert body["error"]["code"] == "HTTP_404"
