from fastapi import APIRouter, Depends, Query
from typing import List
from listing_api.app.api.deps import get_search_service, SearchService
from listing_api.app.domain.models import SearchResult, Suggestion
import logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["search"])


@router.get(
    "",
    summary="목록 검색",
    description=(
        "검색어로 승인된 목록(tools/news/videos)을 검색합니다. "
        "오타를 허용하며 featured > hot > likes > 관련도 순으로 정렬합니다. "
        "검색 인덱스에 장애가 있으면 DB 부분 문자열 검색 결과를 돌려줍니다."
    ),
    operation_id="searchListings",
    status_code=200,
    response_model=SearchResult,
    response_model_by_alias=True,
    responses={
        200: {
            "description": "검색 성공",
            "content": {
                "application/json": {
                    "examples": {
                        "basic": {
                            "summary": "기본 검색 예시",
                            "value": {
                                "items": [
                                    {
                                        "objectID": "chatgpt-plus",
                                        "slug": "chatgpt-plus",
                                        "name": "ChatGPT Plus",
                                        "category": "chatbot",
                                        "featured": True,
                                        "hot": False,
                                        "likes": 120,
                                        "highlighted": {"name": "<mark>Chat</mark>GPT Plus"}
                                    }
                                ],
                                "total": 1,
                                "query": "chat",
                                "page": 1,
                                "totalPages": 1,
                                "facets": {"category": {"chatbot": 1}}
                            }
                        },
                        "empty": {
                            "summary": "빈 검색어",
                            "value": {"items": [], "total": 0, "query": "", "page": 1, "totalPages": 0, "facets": {}}
                        }
                    }
                }
            },
        },
        422: {"description": "잘못된 요청 값"},
        500: {"description": "서버 내부 오류"},
    },
)
async def search(
    q: str = Query("", description="검색어"),
    page: int = Query(1, ge=1, description="1부터 시작하는 페이지"),
    limit: int = Query(10, ge=1, le=100, description="페이지당 건수"),
    category: str | None = Query(None),
    pricing_type: str | None = Query(None),
    facet: List[str] = Query([], description="facet 필터(field:value)"),
    svc: SearchService = Depends(get_search_service)):
    logger.info("SearchRequest: q=%r page=%d limit=%d", q, page, limit)
    filters = {"category": category, "pricing_type": pricing_type}
    return await svc.search(q, page=page, page_size=limit, filters=filters, facet_filters=facet)


@router.get(
    "/suggestions",
    summary="검색어 자동완성",
    description="2자 이상 입력 시 이름 기준 자동완성 후보를 돌려줍니다.",
    operation_id="suggestListings",
    response_model=List[Suggestion],
    response_model_by_alias=True,
    responses={
        200: {
            "description": "자동완성 후보",
            "content": {
                "application/json": {
                    "example": [
                        {"name": "ChatGPT Plus", "slug": "chatgpt-plus", "category": "chatbot",
                         "highlighted": "<mark>Ch</mark>atGPT Plus"}
                    ]
                }
            },
        },
    },
)
async def suggestions(
    q: str = Query("", description="입력 중인 검색어"),
    limit: int = Query(5, ge=1, le=20),
    svc: SearchService = Depends(get_search_service)):
    return await svc.suggest(q, limit=limit)
