from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from starlette.exceptions import HTTPException
from fastapi.exceptions import RequestValidationError

from listing_api.app.api.routers import (
    health,
    search,
    sync,
    index,
    listings
)
from listing_api.app.api.deps import PipelineResolver
from listing_api.app.adapters.opensearch_client import build_opensearch
from listing_api.app.adapters.stores.database import build_engine, build_sessionmaker, init_schema
from listing_api.app.domain.models import EntityKind
from listing_api.app.platform.config import settings
from listing_api.app.platform.logging import setup_logging
from listing_api.app.platform.errors import (
    http_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
    domain_exception_handler
)
from listing_api.app.platform import exceptions as domainex
from listing_api.app.middlewares.request_context import RequestContextMiddleware

logger = logging.getLogger(__name__)


async def prepare_indexes(resolver: PipelineResolver, rebuild: bool = False) -> None:
    """
    종류별 인덱스 설정을 반영한다(필요하면 전체 재색인까지).
    검색 백엔드 오류는 로그만 남기고 DB 검색 모드로 계속 뜬다.
    """
    for kind in EntityKind:
        svc = resolver.for_kind(kind)
        try:
            if await svc.configure() and rebuild:
                await svc.rebuild_all()
        except domainex.SearchBackendError as e:
            logger.error(
                "index preparation failed: kind=%s: %s", kind.value, e,
                extra={"kind": kind.value, "operation": e.operation},
            )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # 로깅 등 공통 준비
    setup_logging(
        log_to_file=settings.LOG_TO_FILE,
        log_dir=settings.LOG_DIR,
        as_json=settings.LOG_AS_JSON,
        level=settings.LOG_LEVEL,
    )

    # DB 엔진/세션 팩토리와 OpenSearch 클라이언트를 한 번만 생성해서 공유
    engine = build_engine(settings)
    await init_schema(engine)
    app.state.sessionmaker = build_sessionmaker(engine)
    app.state.opensearch = build_opensearch(settings)

    await prepare_indexes(
        PipelineResolver(app.state.opensearch, app.state.sessionmaker),
        rebuild=settings.REBUILD_ON_STARTUP,
    )
    try:
        yield
    finally:
        if app.state.opensearch is not None:
            await app.state.opensearch.close()
        await engine.dispose()

app = FastAPI(title="Listing Search API", lifespan=lifespan)
app.include_router(health.router)
app.include_router(search.router, prefix="/api")
app.include_router(sync.router, prefix="/api")
app.include_router(index.router, prefix="/api")
app.include_router(listings.router, prefix="/api")

# Global Exception Filter
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(domainex.DomainError, domain_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# 요청 컨텍스트/액세스 로그 미들웨어
app.add_middleware(RequestContextMiddleware)
