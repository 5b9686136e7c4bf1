import textwrap
import pytest
from pydantic import ValidationError

from listing_api.app.platform.config import Settings, MAX_SYNC_BATCH_SIZE


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("APP_NAME", "DEBUG", "OPENSEARCH_HOST", "OPENSEARCH_USER", "OPENSEARCH_PASSWORD",
                "SYNC_BATCH_SIZE", "API_KEY", "DATABASE_URL"):
        monkeypatch.delenv(key, raising=False)


def test_default_settings():
    """기본값이 올바르게 설정되는지 검증"""
    s = Settings(_env_file=None)
    assert s.APP_NAME == "listing-search-api"
    assert s.DEBUG is False
    assert s.DATABASE_URL.startswith("sqlite+aiosqlite://")
    assert s.OPENSEARCH_HOST == ""
    assert s.search_enabled is False
    assert s.OPENSEARCH_INDEX_PREFIX == "listings"
    assert s.SYNC_BATCH_SIZE == MAX_SYNC_BATCH_SIZE == 1000
    assert s.API_KEY is None


def test_override_with_env(monkeypatch):
    """환경변수로 설정값이 덮어써지는지 검증"""
    monkeypatch.setenv("APP_NAME", "custom-app")
    monkeypatch.setenv("DEBUG", "true")
    monkeypatch.setenv("OPENSEARCH_HOST", "http://test:9999")

    s = Settings(_env_file=None)
    assert s.APP_NAME == "custom-app"
    assert s.DEBUG is True
    assert s.OPENSEARCH_HOST == "http://test:9999"
    assert s.search_enabled is True


def test_env_file_loading(tmp_path):
    """env 파일에서 로딩되는지 검증"""
    env_file = tmp_path / ".env"
    env_file.write_text(textwrap.dedent("""
        APP_NAME=env-app
        OPENSEARCH_HOST=http://env:1234
        OPENSEARCH_USER=admin
        OPENSEARCH_PASSWORD=secret
    """))

    s = Settings(_env_file=env_file)
    assert s.APP_NAME == "env-app"
    assert s.OPENSEARCH_HOST == "http://env:1234"
    assert s.OPENSEARCH_USER == "admin"
    assert s.OPENSEARCH_PASSWORD == "secret"


def test_sync_batch_size_upper_bound(monkeypatch):
    monkeypatch.setenv("SYNC_BATCH_SIZE", "5000")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)
