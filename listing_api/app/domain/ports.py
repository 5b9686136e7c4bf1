"""
도메인 포트(추상 인터페이스).

애플리케이션 서비스(유스케이스)는 아래 포트들(추상)에만 의존합니다.
구체 구현은 adapters 레이어에서 제공하고, FastAPI DI로 주입합니다.
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Protocol, Sequence

from listing_api.app.platform.exceptions import SearchBackendError

from .models import (
    ListableItem,
    SearchDocument,
    SearchPage,
    IndexResult,
)


class ListingStorePort(Protocol):
    """Entity Store(관계형 DB). 원본 데이터와 승인 상태의 주인."""

    async def get_by_slug(self, slug: str, *, approved_only: bool = False) -> ListableItem | None:
        ...

    async def list_approved(self) -> list[ListableItem]:
        ...

    def iter_approved_batches(self, batch_size: int) -> AsyncIterator[list[ListableItem]]:
        ...

    async def insert(self, values: dict[str, Any]) -> ListableItem:
        ...

    async def update(self, slug: str, values: dict[str, Any]) -> ListableItem:
        """
        Raises:
            ResourceNotFound: slug에 해당하는 행이 없음
        """
        ...

    async def set_approval(self, slug: str, approved: bool) -> ListableItem:
        ...

    async def delete(self, slug: str) -> ListableItem:
        ...


class TransformPort(Protocol):
    """
    Entity Store 행을 색인 문서로 정규화/변환.
    - 순수 함수: I/O, 부수효과 없음
    - None 필드 없음(빈 문자열/빈 리스트로 채움)
    """
    def transform(self, item: ListableItem) -> SearchDocument:
        ...


class IndexPort(Protocol):
    """
    검색 인덱스 쓰기 쪽.
    모든 메서드는 실패 시 ServiceUnavailable / InvalidCredentials 를 던진다(재시도 없음).
    """

    async def configure_schema(self) -> None:
        """인덱스 설정/매핑 반영. 반복 호출해도 안전."""
        ...

    async def upsert_one(self, doc: SearchDocument) -> None:
        ...

    async def upsert_many(self, docs: Sequence[SearchDocument]) -> IndexResult:
        ...

    async def delete_one(self, object_id: str) -> None:
        """없는 ID 삭제는 에러가 아니다."""
        ...

    async def clear_all(self) -> None:
        ...


class SearchPort(Protocol):
    """
    검색 인덱스 읽기 쪽.
    """
    async def query(
        self,
        text: str,
        page: int = 0,
        page_size: int = 20,
        filters: dict[str, Any] | None = None,
        facet_filters: Sequence[str] | None = None,
    ) -> SearchPage:
        """
        Args:
            page: 0부터 시작
        Returns:
            SearchPage: hits(하이라이트 포함), total_hits, total_pages, page, facets
        """
        ...

    async def try_query(
        self,
        text: str,
        page: int = 0,
        page_size: int = 20,
        filters: dict[str, Any] | None = None,
        facet_filters: Sequence[str] | None = None,
    ) -> SearchPage | SearchBackendError:
        """
        query()의 결과를 값으로 돌려준다.
        Returns:
            SearchPage 또는 ServiceUnavailable / InvalidCredentials 인스턴스
        """
        ...
