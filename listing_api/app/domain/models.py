"""
도메인 모델 정의.

- ListableItem: Entity Store(관계형 DB)의 원본 행
- SearchDocument: 검색 인덱스에 적재되는 평탄화 문서(ListableItem에서 언제든 재생성 가능)
- SearchHit/SearchPage: 검색 서비스 응답
- SearchItem/SearchResult/Suggestion: API로 나가는 검색 결과
- SyncResult/IndexResult: 동기화/재색인 결과 요약

Pydantic v2 기반 모델이라 검증/직렬화가 용이합니다.
"""

from __future__ import annotations

from enum import Enum
from datetime import datetime
from typing import Any
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from listing_api.app.domain.utils import to_object_id


class EntityKind(str, Enum):
    """목록 엔티티 종류. 종류별로 테이블과 검색 인덱스가 하나씩 있다."""
    tools = "tools"
    news = "news"
    videos = "videos"


class Faq(BaseModel):
    question: str = ""
    answer: str = ""

    @field_validator("question", "answer", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v


_TEXT_FIELDS = (
    "slug", "description", "short_description", "category",
    "pricing_type", "website", "logo_url",
)
_LIST_FIELDS = ("tags", "key_features", "use_cases", "audience", "access_type")


class ListableItem(BaseModel):
    """
    Entity Store의 목록 엔티티 1건.
    nullable 컬럼은 읽는 시점에 ""/[]/False/0 으로 정규화한다.
    """
    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    kind: EntityKind = EntityKind.tools
    name: str
    slug: str = ""
    description: str = ""
    short_description: str = ""
    category: str = ""
    tags: list[str] = Field(default_factory=list)
    key_features: list[str] = Field(default_factory=list)
    use_cases: list[str] = Field(default_factory=list)
    audience: list[str] = Field(default_factory=list)
    access_type: list[str] = Field(default_factory=list)
    pricing_type: str = ""
    faqs: list[Faq] = Field(default_factory=list)
    website: str = ""
    logo_url: str = ""
    is_featured: bool = False
    is_hot: bool = False
    likes: int = Field(0, ge=0)
    is_approved: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator(*_TEXT_FIELDS, mode="before")
    @classmethod
    def _text_default(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator(*_LIST_FIELDS, mode="before")
    @classmethod
    def _list_default(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("faqs", mode="before")
    @classmethod
    def _faqs_default(cls, v: Any) -> Any:
        if not isinstance(v, list):
            return []
        return [f for f in v if isinstance(f, (dict, Faq))]

    @field_validator("is_featured", "is_hot", "is_approved", mode="before")
    @classmethod
    def _bool_default(cls, v: Any) -> Any:
        return False if v is None else v

    @field_validator("likes", mode="before")
    @classmethod
    def _likes_default(cls, v: Any) -> Any:
        return 0 if v is None else v

    @property
    def object_id(self) -> str:
        """색인 문서 ID. slug/name 둘 다 비어 있으면 행 id."""
        return to_object_id(self.slug, self.name) or str(self.id)


class SearchDocument(BaseModel):
    """
    인덱스 문서 1건과 1:1로 매핑되는 모델.
    OpenSearch 매핑(resources/schema/listing_index.json):
      - object_id, slug, category, pricing_type, access_type: keyword
      - name, description, short_description, tags, searchable_blob: text
      - featured, hot: boolean / likes: integer
    """
    object_id: str = Field(..., min_length=1)
    slug: str = ""
    name: str = ""
    description: str = ""
    short_description: str = ""
    category: str = ""
    tags: list[str] = Field(default_factory=list)
    pricing_type: str = ""
    access_type: list[str] = Field(default_factory=list)
    searchable_blob: str = ""
    featured: bool = False
    hot: bool = False
    likes: int = 0
    website: str = ""
    logo_url: str = ""


class SearchHit(SearchDocument):
    """검색 결과 1건. highlights: 필드명 -> <mark>로 감싼 조각"""
    score: float | None = None
    highlights: dict[str, str] = Field(default_factory=dict)


class SearchPage(BaseModel):
    """검색 서비스 1회 질의 결과(page는 0부터)."""
    hits: list[SearchHit] = Field(default_factory=list)
    total_hits: int = 0
    total_pages: int = 0
    page: int = 0
    facets: dict[str, dict[str, int]] = Field(default_factory=dict)


class IndexErrorItem(BaseModel):
    """인덱싱 실패 항목 요약."""
    doc_id: str
    reason: str


class IndexResult(BaseModel):
    """인덱싱 실행 결과."""
    indexed: int = Field(0, ge=0)
    errors: list[IndexErrorItem] = Field(default_factory=list)


# ================= API 응답 모델 (camelCase) =================

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SearchItem(CamelModel):
    """UI로 나가는 검색 결과 1건."""
    object_id: str = Field(..., alias="objectID")
    slug: str
    name: str
    category: str = ""
    description: str = ""
    short_description: str = ""
    tags: list[str] = Field(default_factory=list)
    pricing_type: str = ""
    website: str = ""
    logo_url: str = ""
    featured: bool = False
    hot: bool = False
    likes: int = 0
    highlighted: dict[str, str] = Field(default_factory=dict)


class SearchResult(CamelModel):
    items: list[SearchItem] = Field(default_factory=list)
    total: int = 0
    query: str = ""
    page: int = 1
    total_pages: int = 0
    facets: dict[str, dict[str, int]] = Field(default_factory=dict)


class Suggestion(CamelModel):
    name: str
    slug: str
    category: str = ""
    highlighted: str = ""


class SyncResult(CamelModel):
    """
    시트 동기화 1회 결과. 저장하지 않고 응답으로만 쓴다.
    rejected: 입력 검증에서 탈락한 레코드 수(errors에 포함)
    """
    total: int = 0
    inserted: int = 0
    updated: int = 0
    errors: int = 0
    rejected: int = 0
    error_messages: list[str] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.errors == 0

    @property
    def message(self) -> str:
        if self.errors == 0:
            return f"Successfully synced {self.total} records"
        return f"Synced with {self.errors} errors"

    def add_error(self, message: str, *, rejected: bool = False) -> None:
        self.errors += 1
        if rejected:
            self.rejected += 1
        self.error_messages.append(message)

    def to_response(self) -> dict[str, Any]:
        body = self.model_dump(by_alias=True)
        body["success"] = self.success
        body["message"] = self.message
        return body
