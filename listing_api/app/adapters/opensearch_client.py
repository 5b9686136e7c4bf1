"""
AsyncOpenSearch 클라이언트 생성과 예외 변환.

클라이언트는 전역으로 두지 않는다. main.py lifespan에서 한 번 만들어 app.state에 넣고,
Indexer/Searcher는 생성자로 주입받는다.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from typing import Iterator
from urllib.parse import urlparse

from opensearchpy import AsyncOpenSearch
from opensearchpy.exceptions import (
    AuthenticationException,
    AuthorizationException,
    ConnectionError as OpenSearchConnectionError,
    OpenSearchException,
    TransportError,
)

from listing_api.app.platform.config import Settings
from listing_api.app.platform.exceptions import InvalidCredentials, ServiceUnavailable

logger = logging.getLogger(__name__)


def build_opensearch(settings: Settings) -> AsyncOpenSearch | None:
    """
    설정으로 AsyncOpenSearch를 만든다.
    Returns:
        AsyncOpenSearch | None: 호스트 미설정/인증 정보 불완전이면 None (DB 검색으로 동작)
    """
    if not settings.search_enabled:
        logger.info("OPENSEARCH_HOST not set; search runs on the entity store only")
        return None
    if settings.OPENSEARCH_USER and not settings.OPENSEARCH_PASSWORD:
        logger.error(
            "OPENSEARCH_USER is set without OPENSEARCH_PASSWORD; search runs on the entity store only",
            extra={"operation": "build_client"},
        )
        return None

    u = urlparse(settings.OPENSEARCH_HOST)
    http_auth = None
    if settings.OPENSEARCH_USER:
        http_auth = (settings.OPENSEARCH_USER, settings.OPENSEARCH_PASSWORD)
    return AsyncOpenSearch(
        hosts=[{"host": u.hostname, "port": u.port or 9200, "scheme": u.scheme or "http"}],
        http_auth=http_auth,
        use_ssl=u.scheme == "https",
        verify_certs=settings.OPENSEARCH_VERIFY_CERTS,
        ssl_show_warn=False,
        timeout=settings.OPENSEARCH_TIMEOUT,
    )


@contextmanager
def translate_errors(operation: str, object_id: str | None = None) -> Iterator[None]:
    """
    opensearch-py 예외를 도메인 예외로 바꾼다.
    - 401/403 -> InvalidCredentials
    - 연결 실패/타임아웃/응답 해석 실패/그 밖의 전송 오류 -> ServiceUnavailable
    """
    try:
        yield
    except (AuthenticationException, AuthorizationException) as e:
        raise InvalidCredentials(operation, _reason(e), object_id) from e
    except OpenSearchConnectionError as e:
        # ConnectionTimeout 포함
        raise ServiceUnavailable(operation, _reason(e), object_id) from e
    except TransportError as e:
        raise ServiceUnavailable(operation, _reason(e), object_id) from e
    except OpenSearchException as e:
        # SerializationError 등(프록시가 돌려준 HTML 응답 포함)
        raise ServiceUnavailable(operation, _reason(e), object_id) from e
    except asyncio.TimeoutError as e:
        raise ServiceUnavailable(operation, "timed out", object_id) from e


def _reason(e: Exception) -> str:
    status = getattr(e, "status_code", None)
    error = getattr(e, "error", None)
    if isinstance(status, int) and error:
        return f"{status} {error}"
    return str(e) or e.__class__.__name__
