"""
사용자 검색 쿼리를 받아 검색하는 SearchPort 구현체.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Sequence
from opensearchpy import AsyncOpenSearch
from pydantic import ValidationError
from listing_api.app.adapters.opensearch_client import translate_errors
from listing_api.app.domain.ports import SearchPort
from listing_api.app.domain.models import SearchHit, SearchPage
from listing_api.app.platform.exceptions import SearchBackendError, ServiceUnavailable

# 오타 허용: 4자 이상 1글자, 8자 이상 2글자
MIN_WORD_SIZE_FOR_1_TYPO = 4
MIN_WORD_SIZE_FOR_2_TYPOS = 8
FUZZINESS = f"AUTO:{MIN_WORD_SIZE_FOR_1_TYPO},{MIN_WORD_SIZE_FOR_2_TYPOS}"

# 관련도보다 먼저 적용되는 정렬
CUSTOM_RANKING = [
    {"featured": {"order": "desc"}},
    {"hot": {"order": "desc"}},
    {"likes": {"order": "desc"}},
    {"_score": {"order": "desc"}},
]

SEARCH_FIELDS = [
    "name^4",
    "name.prefix^2",
    "short_description^2",
    "description",
    "category.text^2",
    "tags.text^1.5",
    "searchable_blob",
]

HIGHLIGHT_PRE_TAG = "<mark>"
HIGHLIGHT_POST_TAG = "</mark>"
HIGHLIGHT_FIELDS = ("name", "description", "short_description")

FACET_FIELDS = ("category", "pricing_type", "access_type", "featured", "hot")
FACET_SIZE = 50


class OpenSearchSearcher(SearchPort):

    def __init__(self, client: AsyncOpenSearch, index_name: str) -> None:
        self.client = client
        self.index_name = index_name

    async def query(
        self,
        text: str,
        page: int = 0,
        page_size: int = 20,
        filters: Dict[str, Any] | None = None,
        facet_filters: Sequence[str] | None = None) -> SearchPage:
        """
        OpenSearch에 검색을 수행하여 결과를 반환한다.

        Args:
            text (str): 검색어
            page (int): 0부터 시작하는 페이지
            page_size (int): 페이지당 문서 개수
            filters (dict): {필드: 값} 정확히 일치하는 조건
            facet_filters (list): "필드:값" 형태의 조건
        Returns:
            SearchPage: 하이라이트 포함 hits, 전체 건수, 페이지 수, facets
        Raises:
            ServiceUnavailable, InvalidCredentials
        """
        body = self._build_query(text, page, page_size, filters, facet_filters)
        with translate_errors("query"):
            resp = await self.client.search(index=self.index_name, body=body)
        try:
            return self._to_page(resp, page, page_size)
        except (ValidationError, AttributeError) as e:
            # _source가 색인 스키마와 맞지 않는 응답
            raise ServiceUnavailable("query", f"malformed search response: {e}") from e

    async def try_query(
        self,
        text: str,
        page: int = 0,
        page_size: int = 20,
        filters: Dict[str, Any] | None = None,
        facet_filters: Sequence[str] | None = None) -> SearchPage | SearchBackendError:
        """
        query()와 같지만 백엔드 오류를 예외 대신 값으로 돌려준다.
        호출자는 반환 타입(ServiceUnavailable / InvalidCredentials)을 보고 경로를 고른다.
        """
        try:
            return await self.query(text, page, page_size, filters, facet_filters)
        except SearchBackendError as e:
            return e

    def _build_query(
        self,
        text: str,
        page: int = 0,
        page_size: int = 20,
        filters: Dict[str, Any] | None = None,
        facet_filters: Sequence[str] | None = None) -> Dict[str, Any]:
        """
        검색 쿼리 바디를 구성한다.

        Args:
            text (str): 검색어
            page (int): 0부터 시작하는 페이지
            page_size (int): 페이지당 문서 개수
            filters (dict): term 필터
            facet_filters (list): "필드:값" 필터
        Returns:
            Dict[str, Any]: 검색 쿼리 바디
        """
        body = {
            "from": max(page, 0) * page_size,
            "size": page_size,
            "track_total_hits": True,
            "query": {
                "bool": {
                    "must": [
                        {
                            "multi_match": {
                                "query": text,
                                "fields": SEARCH_FIELDS,
                                "type": "best_fields",
                                "operator": "or",
                                "fuzziness": FUZZINESS,
                                "prefix_length": 1,
                            }
                        }
                    ],
                    "filter": self._filter_clauses(filters, facet_filters),
                }
            },
            "sort": CUSTOM_RANKING,
            "highlight": {
                "pre_tags": [HIGHLIGHT_PRE_TAG],
                "post_tags": [HIGHLIGHT_POST_TAG],
                "fields": {field: {"number_of_fragments": 0} for field in HIGHLIGHT_FIELDS},
            },
            "aggs": {
                field: {"terms": {"field": field, "size": FACET_SIZE}}
                for field in FACET_FIELDS
            },
        }
        return body

    @staticmethod
    def _filter_clauses(
        filters: Dict[str, Any] | None,
        facet_filters: Sequence[str] | None) -> list[Dict[str, Any]]:
        clauses: list[Dict[str, Any]] = []
        for field, value in (filters or {}).items():
            if value is None or value == "":
                continue
            clauses.append({"term": {field: value}})
        for raw in facet_filters or []:
            field, sep, value = raw.partition(":")
            if not sep or not field.strip() or not value.strip():
                continue
            clauses.append({"term": {field.strip(): _facet_value(value.strip())}})
        return clauses

    def _to_page(self, resp: Dict[str, Any], page: int, page_size: int) -> SearchPage:
        hits_block = resp.get("hits", {})
        total = hits_block.get("total", 0)
        if isinstance(total, dict):
            total = total.get("value", 0)

        hits = []
        for h in hits_block.get("hits", []):
            highlights = {
                field: fragments[0]
                for field, fragments in (h.get("highlight") or {}).items()
                if fragments
            }
            hits.append(SearchHit.model_validate({
                **(h.get("_source") or {}),
                "object_id": h.get("_id"),
                "score": h.get("_score"),
                "highlights": highlights,
            }))

        facets = {}
        for field, agg in (resp.get("aggregations") or {}).items():
            facets[field] = {
                str(b.get("key_as_string", b.get("key"))): b.get("doc_count", 0)
                for b in agg.get("buckets", [])
            }

        return SearchPage(
            hits=hits,
            total_hits=total,
            total_pages=math.ceil(total / page_size) if page_size else 0,
            page=page,
            facets=facets,
        )


def _facet_value(value: str) -> Any:
    # featured:true 같은 boolean facet
    lowered = value.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    return value
