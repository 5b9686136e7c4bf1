import asyncio
import pytest
from opensearchpy import AsyncOpenSearch
from opensearchpy.exceptions import (
    AuthenticationException,
    ConnectionError as OpenSearchConnectionError,
    SerializationError,
    TransportError,
)

from listing_api.app.adapters.opensearch_client import build_opensearch, translate_errors
from listing_api.app.platform.config import Settings
from listing_api.app.platform.exceptions import InvalidCredentials, ServiceUnavailable


def test_build_opensearch_unconfigured_returns_none():
    assert build_opensearch(Settings(OPENSEARCH_HOST="")) is None


def test_build_opensearch_user_without_password_returns_none(caplog):
    s = Settings(OPENSEARCH_HOST="http://os:9200", OPENSEARCH_USER="admin", OPENSEARCH_PASSWORD=None)

    with caplog.at_level("ERROR"):
        assert build_opensearch(s) is None
    assert "OPENSEARCH_PASSWORD" in caplog.text


async def test_build_opensearch_returns_async_client():
    client = build_opensearch(Settings(OPENSEARCH_HOST="http://os:9200"))
    try:
        assert isinstance(client, AsyncOpenSearch)
    finally:
        await client.close()


def test_translate_auth_error():
    with pytest.raises(InvalidCredentials) as ei:
        with translate_errors("upsert_one", "a"):
            raise AuthenticationException(401, "unauthorized", {})
    assert ei.value.operation == "upsert_one"
    assert ei.value.object_id == "a"
    assert "401" in ei.value.reason


@pytest.mark.parametrize("exc", [
    OpenSearchConnectionError("N/A", "refused", Exception("refused")),
    TransportError(500, "internal", {}),
    SerializationError("Unable to deserialize <html>502</html>"),
    asyncio.TimeoutError(),
])
def test_translate_unavailable(exc):
    with pytest.raises(ServiceUnavailable):
        with translate_errors("query"):
            raise exc


def test_translate_passes_other_errors():
    with pytest.raises(KeyError):
        with translate_errors("query"):
            raise KeyError("x")
