"""
SearchService
==============

목록 검색/자동완성 유스케이스.

Flow:
    검색어 → (검색 인덱스 | DB 폴백) → SearchResult / Suggestion

- 검색 인덱스가 없거나(미설정) ServiceUnavailable / InvalidCredentials 를 돌려주면
  Entity Store의 승인된 행을 메모리에서 부분 문자열로 훑는 폴백 경로로 간다.
- 폴백은 전체 승인 행을 읽으므로 O(행 수)다. 행이 많아지면 인덱스 장애 시 응답이 느려진다.
- 검색/자동완성은 백엔드 오류를 밖으로 던지지 않는다.

예시:
    svc = SearchService(store, searcher)
    result = await svc.search("chatbot", page=1, page_size=10)
    suggestions = await svc.suggest("ch", limit=5)
"""

from __future__ import annotations

import logging
import math
import re
from collections import Counter
from typing import Any, Sequence

from listing_api.app.domain.ports import ListingStorePort, SearchPort
from listing_api.app.domain.models import (
    ListableItem,
    SearchHit,
    SearchItem,
    SearchPage,
    SearchResult,
    Suggestion,
)
from listing_api.app.domain.utils import join_searchable
from listing_api.app.platform.exceptions import InvalidCredentials, SearchBackendError

logger = logging.getLogger(__name__)

MIN_SUGGEST_LENGTH = 2
MARK_OPEN = "<mark>"
MARK_CLOSE = "</mark>"

# 폴백 경로의 facet 집계 대상(ListableItem 필드명 -> facet 이름)
_FALLBACK_FACETS = {
    "category": "category",
    "pricing_type": "pricing_type",
    "access_type": "access_type",
    "is_featured": "featured",
    "is_hot": "hot",
}
# 검색 필터/facet 이름 -> ListableItem 필드명
_FILTER_FIELDS = {
    "category": "category",
    "pricing_type": "pricing_type",
    "access_type": "access_type",
    "tags": "tags",
    "featured": "is_featured",
    "hot": "is_hot",
}


class SearchService:

    def __init__(self, store: ListingStorePort, searcher: SearchPort | None = None) -> None:
        """
        Args:
            store: ListingStorePort  : 폴백 검색용 Entity Store
            searcher: SearchPort     : 검색 인덱스(None이면 항상 DB 폴백)
        """
        self.store = store
        self.searcher = searcher

    async def search(
        self,
        query: str,
        page: int = 1,
        page_size: int = 10,
        filters: dict[str, Any] | None = None,
        facet_filters: Sequence[str] | None = None,
    ) -> SearchResult:
        """
        검색어로 승인된 목록을 찾는다.

        Args:
            query (str): 검색어(공백뿐이면 빈 결과)
            page (int): 1부터 시작
            page_size (int): 페이지당 건수
            filters (dict): {category|pricing_type|...: 값}
            facet_filters (list): "필드:값"
        Returns:
            SearchResult
        """
        text = (query or "").strip()
        if not text:
            return SearchResult(items=[], total=0, query="")
        page = max(page, 1)

        outcome = await self._primary(text, page - 1, page_size, filters, facet_filters)
        if isinstance(outcome, SearchPage):
            return SearchResult(
                items=[self._hit_to_item(h) for h in outcome.hits],
                total=outcome.total_hits,
                query=text,
                page=page,
                total_pages=outcome.total_pages,
                facets=outcome.facets,
            )

        matches = await self._fallback_matches(text, filters, facet_filters)
        start = (page - 1) * page_size
        return SearchResult(
            items=[self._row_to_item(item) for item in matches[start:start + page_size]],
            total=len(matches),
            query=text,
            page=page,
            total_pages=math.ceil(len(matches) / page_size) if page_size else 0,
            facets=self._count_facets(matches),
        )

    async def suggest(self, query: str, limit: int = 5) -> list[Suggestion]:
        """
        자동완성 후보. 2자 미만이면 아무것도 조회하지 않고 [] 를 돌려준다.
        """
        text = (query or "").strip()
        if len(text) < MIN_SUGGEST_LENGTH:
            return []

        outcome = await self._primary(text, 0, limit, None, None)
        if isinstance(outcome, SearchPage):
            return [
                Suggestion(
                    name=h.name,
                    slug=h.slug or h.object_id,
                    category=h.category,
                    highlighted=h.highlights.get("name", h.name),
                )
                for h in outcome.hits[:limit]
            ]

        matches = await self._fallback_matches(text, None, None)
        return [
            Suggestion(
                name=item.name,
                slug=self._row_to_item(item).slug,
                category=item.category,
                highlighted=highlight_match(item.name, text),
            )
            for item in matches[:limit]
        ]

    # ================== internal helpers ==================
    async def _primary(
        self,
        text: str,
        page: int,
        page_size: int,
        filters: dict[str, Any] | None,
        facet_filters: Sequence[str] | None,
    ) -> SearchPage | SearchBackendError | None:
        """
        검색 인덱스 조회. SearchPage가 아니면 폴백한다.
        """
        if self.searcher is None:
            logger.debug("no search backend configured; using database search")
            return None
        outcome = await self.searcher.try_query(text, page, page_size, filters, facet_filters)
        if isinstance(outcome, InvalidCredentials):
            logger.error(
                "search backend rejected credentials; using database search: %s", outcome,
                extra={"operation": outcome.operation, "fallback": True},
            )
        elif isinstance(outcome, SearchBackendError):
            logger.warning(
                "search backend unavailable; using database search: %s", outcome,
                extra={"operation": outcome.operation, "fallback": True},
            )
        return outcome

    async def _fallback_matches(
        self,
        text: str,
        filters: dict[str, Any] | None,
        facet_filters: Sequence[str] | None,
    ) -> list[ListableItem]:
        """
        승인된 행 중 검색어 단어 하나라도 부분 문자열로 포함한 행.
        정렬: 이름에 검색어 전체 포함 > featured > DB 순서
        """
        lowered = text.lower()
        words = lowered.split()
        conditions = _parse_conditions(filters, facet_filters)

        matches = []
        for item in await self.store.list_approved():
            haystack = fallback_haystack(item)
            if not any(w in haystack for w in words):
                continue
            if not all(_satisfies(item, field, value) for field, value in conditions):
                continue
            matches.append(item)

        matches.sort(key=lambda it: (lowered not in it.name.lower(), not it.is_featured))
        return matches

    @staticmethod
    def _hit_to_item(hit: SearchHit) -> SearchItem:
        return SearchItem(
            object_id=hit.object_id,
            slug=hit.slug or hit.object_id,
            name=hit.name,
            category=hit.category,
            description=hit.description,
            short_description=hit.short_description,
            tags=hit.tags,
            pricing_type=hit.pricing_type,
            website=hit.website,
            logo_url=hit.logo_url,
            featured=hit.featured,
            hot=hit.hot,
            likes=hit.likes,
            highlighted=hit.highlights,
        )

    @staticmethod
    def _row_to_item(item: ListableItem) -> SearchItem:
        object_id = item.object_id
        return SearchItem(
            object_id=object_id,
            slug=item.slug or object_id,
            name=item.name,
            category=item.category,
            description=item.description,
            short_description=item.short_description,
            tags=item.tags,
            pricing_type=item.pricing_type,
            website=item.website,
            logo_url=item.logo_url,
            featured=item.is_featured,
            hot=item.is_hot,
            likes=item.likes,
        )

    @staticmethod
    def _count_facets(items: list[ListableItem]) -> dict[str, dict[str, int]]:
        facets: dict[str, dict[str, int]] = {}
        for field, facet in _FALLBACK_FACETS.items():
            counter: Counter[str] = Counter()
            for item in items:
                value = getattr(item, field)
                values = value if isinstance(value, list) else [value]
                for v in values:
                    if v == "":
                        continue
                    counter[str(v).lower() if isinstance(v, bool) else str(v)] += 1
            if counter:
                facets[facet] = dict(counter)
        return facets


def fallback_haystack(item: ListableItem) -> str:
    """폴백 검색 대상 텍스트(소문자)."""
    faq_text = [part for faq in item.faqs for part in (faq.question, faq.answer)]
    return join_searchable([
        item.name,
        item.category,
        item.short_description,
        item.description,
        item.tags,
        item.key_features,
        item.use_cases,
        item.audience,
        item.access_type,
        item.pricing_type,
        faq_text,
    ]).lower()


def highlight_match(name: str, query: str) -> str:
    """
    이름에서 검색어(없으면 첫 번째로 걸리는 단어)를 <mark>로 감싼다.
    """
    candidates = [query.strip()] + query.split()
    for candidate in candidates:
        if not candidate:
            continue
        m = re.search(re.escape(candidate), name, flags=re.IGNORECASE)
        if m:
            return f"{name[:m.start()]}{MARK_OPEN}{m.group(0)}{MARK_CLOSE}{name[m.end():]}"
    return name


def _parse_conditions(
    filters: dict[str, Any] | None,
    facet_filters: Sequence[str] | None,
) -> list[tuple[str, Any]]:
    conditions: list[tuple[str, Any]] = []
    for key, value in (filters or {}).items():
        if value is None or value == "":
            continue
        conditions.append((key, value))
    for raw in facet_filters or []:
        key, sep, value = raw.partition(":")
        if sep and key.strip() and value.strip():
            conditions.append((key.strip(), value.strip()))
    return conditions


def _satisfies(item: ListableItem, key: str, value: Any) -> bool:
    field = _FILTER_FIELDS.get(key)
    if field is None:
        # 모르는 필드는 인덱스와 마찬가지로 어떤 행도 통과시키지 않는다
        return False
    actual = getattr(item, field)
    if isinstance(actual, bool):
        return actual == (str(value).lower() == "true" if not isinstance(value, bool) else value)
    if isinstance(actual, list):
        return str(value) in actual
    return actual == str(value)
