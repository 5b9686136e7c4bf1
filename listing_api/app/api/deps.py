from __future__ import annotations

from fastapi import Depends, Query, Request
from opensearchpy import AsyncOpenSearch
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from listing_api.app.domain.models import EntityKind
from listing_api.app.domain.ports import IndexPort, SearchPort, TransformPort
from listing_api.app.domain.services.search_service import SearchService
from listing_api.app.domain.services.index_service import IndexService
from listing_api.app.adapters.stores.database import build_engine, build_sessionmaker
from listing_api.app.adapters.stores.sql_listing_store import SqlListingStore
from listing_api.app.adapters.transformers.listing_transformer import ListingTransformer
from listing_api.app.adapters.indexers.opensearch_indexer import OpenSearchIndexer
from listing_api.app.adapters.searchers.opensearch_searcher import OpenSearchSearcher
from listing_api.app.platform.config import settings


# ---- 클라이언트 ----
def get_opensearch(request: Request) -> AsyncOpenSearch | None:
    """
    앱 시작 시 main.py의 lifespan에서 만들어 넣어둔 OpenSearch 클라이언트를 꺼낸다.
    미설정이면 None(DB 검색으로 동작).
    """
    return getattr(request.app.state, "opensearch", None)


def get_sessionmaker(request: Request) -> async_sessionmaker[AsyncSession]:
    """
    lifespan에서 만든 세션 팩토리를 꺼낸다. 없으면(lifespan 없이 띄운 경우) 즉석 생성.
    """
    maker = getattr(request.app.state, "sessionmaker", None)
    if maker is None:
        maker = build_sessionmaker(build_engine(settings))
        request.app.state.sessionmaker = maker
    return maker


def index_name_for(kind: EntityKind) -> str:
    return f"{settings.OPENSEARCH_INDEX_PREFIX}-{kind.value}"


class PipelineResolver:
    def __init__(
        self,
        os: AsyncOpenSearch | None,
        sessionmaker: async_sessionmaker[AsyncSession]) -> None:
        # OpenSearch 클라이언트(없을 수 있음)와 DB 세션 팩토리 주입
        self._os = os
        self._sessionmaker = sessionmaker
        self._transformer: TransformPort = ListingTransformer()

    def for_kind(self, kind: EntityKind) -> IndexService:
        """
        주어진 kind(tools/news/videos)에 맞는
        store, transformer, indexer를 조립해서 IndexService를 반환한다.
        """
        indexer: IndexPort | None = None
        if self._os is not None:
            indexer = OpenSearchIndexer(
                self._os,
                index_name_for(kind),
                batch_size=settings.SYNC_BATCH_SIZE)
        return IndexService(
            kind=kind,
            store=SqlListingStore(self._sessionmaker, kind),
            transformer=self._transformer,
            indexer=indexer,
            batch_size=settings.SYNC_BATCH_SIZE,
        )

    def search_service(self, kind: EntityKind) -> SearchService:
        searcher: SearchPort | None = None
        if self._os is not None:
            searcher = OpenSearchSearcher(self._os, index_name_for(kind))
        return SearchService(SqlListingStore(self._sessionmaker, kind), searcher)


def get_pipeline_resolver(
    os: AsyncOpenSearch | None = Depends(get_opensearch),
    sessionmaker: async_sessionmaker[AsyncSession] = Depends(get_sessionmaker)) -> PipelineResolver:
    """
    FastAPI DI에서 OpenSearch 클라이언트와 세션 팩토리를 받아 PipelineResolver를 생성해 주입한다.
    """
    return PipelineResolver(os, sessionmaker)


def get_search_service(
    kind: EntityKind = Query(EntityKind.tools, description="검색 대상 종류"),
    resolver: PipelineResolver = Depends(get_pipeline_resolver)) -> SearchService:
    return resolver.search_service(kind)
