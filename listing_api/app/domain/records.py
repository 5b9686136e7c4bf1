"""
시트(ETL)에서 들어오는 레코드 스키마.

엔티티 종류마다 모델이 하나씩 있고, 동기화 서비스는 원본 dict를 종류에 맞는
모델로 검증한 뒤에만 Entity Store/Transformer로 넘긴다.
시트 컬럼은 camelCase(keyFeatures, isPublished ...)로 오지만 snake_case도 받는다.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, ClassVar

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from listing_api.app.domain.models import EntityKind, Faq
from listing_api.app.domain.utils import normalize_array_field, slugify
from listing_api.app.platform.exceptions import RecordValidationError


class IncomingRecord(BaseModel):
    """시트 레코드 공통 필드/규칙."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    kind: ClassVar[EntityKind]
    # 컬럼 -> 그 값을 만드는 입력 필드
    column_sources: ClassVar[dict[str, tuple[str, ...]]] = {
        "category": ("category",),
        "tags": ("tags",),
        "is_featured": ("is_featured",),
        "is_hot": ("is_hot",),
    }

    slug: str | None = None
    category: str = ""
    tags: list[str] = Field(default_factory=list)
    is_featured: bool = False
    is_hot: bool = False
    is_approved: bool | None = None
    is_published: bool | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, v: Any) -> list[str]:
        return normalize_array_field(v)

    @field_validator("is_approved", "is_published", mode="before")
    @classmethod
    def _blank_bool(cls, v: Any) -> Any:
        # 시트의 빈 셀은 "미입력"으로 본다
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("is_featured", "is_hot", mode="before")
    @classmethod
    def _blank_is_false(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return False
        return v

    @field_validator("category", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @model_validator(mode="after")
    def _require_natural_key(self) -> "IncomingRecord":
        if not self.natural_key:
            raise ValueError("cannot derive a slug from slug/name")
        return self

    # ---- 종류별 구현 ----
    @property
    def display_name(self) -> str:
        raise NotImplementedError

    def to_values(self) -> dict[str, Any]:
        """Entity Store 컬럼 값(dict)으로 변환한다."""
        raise NotImplementedError

    # ---- 공통 ----
    @property
    def natural_key(self) -> str:
        """
        기존 행 존재 여부를 판단하는 키.
        종류와 무관하게 항상 slug(명시값 정규화, 없으면 이름/제목에서 도출)를 쓴다.
        """
        if self.slug:
            return slugify(self.slug)
        return slugify(self.display_name)

    @property
    def approved(self) -> bool:
        if self.is_approved is not None:
            return self.is_approved
        return bool(self.is_published)

    def update_values(self) -> dict[str, Any]:
        """
        기존 행 갱신용 컬럼 값. 레코드에 실제로 들어온 필드의 컬럼만 쓴다.
        시트에 없는 컬럼(승인 여부 포함)은 저장된 값을 유지한다.
        """
        return {col: v for col, v in self.to_values().items() if self._column_given(col)}

    def _column_given(self, column: str) -> bool:
        if column == "is_approved":
            return self.is_approved is not None or self.is_published is not None
        sources = self.column_sources.get(column)
        if sources is None:
            # slug, name: 항상 기록
            return True
        return not self.model_fields_set.isdisjoint(sources)

    def _common_values(self) -> dict[str, Any]:
        return {
            "slug": self.natural_key,
            "name": self.display_name,
            "category": self.category,
            "tags": self.tags,
            "is_featured": self.is_featured,
            "is_hot": self.is_hot,
            "is_approved": self.approved,
        }


class IncomingTool(IncomingRecord):
    kind: ClassVar[EntityKind] = EntityKind.tools
    column_sources: ClassVar[dict[str, tuple[str, ...]]] = IncomingRecord.column_sources | {
        "description": ("description",),
        "short_description": ("short_description",),
        "website": ("url",),
        "logo_url": ("logo",),
        "key_features": ("key_features",),
        "use_cases": ("use_cases",),
        "audience": ("audience",),
        "access_type": ("access_type",),
        "pricing_type": ("pricing_type",),
        "faqs": ("faqs",),
    }

    name: str = Field(..., min_length=1)
    description: str = ""
    short_description: str = ""
    url: str | None = Field(
        None, validate_default=True, validation_alias=AliasChoices("url", "website"))
    logo: str | None = Field(None, validation_alias=AliasChoices("logo", "logoUrl", "logo_url"))
    key_features: list[str] = Field(default_factory=list)
    use_cases: list[str] = Field(default_factory=list)
    audience: list[str] = Field(default_factory=list)
    access_type: list[str] = Field(default_factory=list)
    pricing_type: str | None = None
    faqs: list[Faq] = Field(default_factory=list)

    @field_validator("description", "short_description", mode="before")
    @classmethod
    def _text_none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("key_features", "use_cases", "audience", "access_type", mode="before")
    @classmethod
    def _split_lists(cls, v: Any) -> list[str]:
        return normalize_array_field(v)

    @field_validator("faqs", mode="before")
    @classmethod
    def _parse_faqs(cls, v: Any) -> Any:
        if v is None or v == "":
            return []
        if isinstance(v, str):
            try:
                v = json.loads(v)
            except ValueError:
                return []
        return [f for f in v if isinstance(f, dict)] if isinstance(v, list) else []

    @field_validator("url", mode="after")
    @classmethod
    def _require_url(cls, v: str | None) -> str:
        if not v:
            raise ValueError("url/website is required")
        return v

    @property
    def display_name(self) -> str:
        return self.name

    def to_values(self) -> dict[str, Any]:
        return self._common_values() | {
            "description": self.description,
            "short_description": self.short_description,
            "website": self.url,
            "logo_url": self.logo,
            "key_features": self.key_features,
            "use_cases": self.use_cases,
            "audience": self.audience,
            "access_type": self.access_type,
            "pricing_type": self.pricing_type,
            "faqs": [f.model_dump() for f in self.faqs],
        }


class IncomingNews(IncomingRecord):
    kind: ClassVar[EntityKind] = EntityKind.news
    column_sources: ClassVar[dict[str, tuple[str, ...]]] = IncomingRecord.column_sources | {
        "description": ("excerpt",),
        "website": ("source_url",),
        "source": ("source",),
        "publish_date": ("publish_date",),
    }

    title: str = Field(..., min_length=1, validation_alias=AliasChoices("title", "name"))
    excerpt: str = Field("", validation_alias=AliasChoices("excerpt", "description"))
    source: str | None = None
    source_url: str | None = Field(
        None, validate_default=True, validation_alias=AliasChoices("sourceUrl", "source_url", "url"))
    publish_date: datetime | None = None

    @field_validator("excerpt", mode="before")
    @classmethod
    def _text_none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("source_url", mode="after")
    @classmethod
    def _require_url(cls, v: str | None) -> str:
        if not v:
            raise ValueError("sourceUrl/url is required")
        return v

    @field_validator("publish_date", mode="before")
    @classmethod
    def _blank_date(cls, v: Any) -> Any:
        return None if isinstance(v, str) and not v.strip() else v

    @property
    def display_name(self) -> str:
        return self.title

    def to_values(self) -> dict[str, Any]:
        return self._common_values() | {
            "description": self.excerpt,
            "website": self.source_url,
            "source": self.source,
            "publish_date": self.publish_date,
        }


class IncomingVideo(IncomingRecord):
    kind: ClassVar[EntityKind] = EntityKind.videos
    column_sources: ClassVar[dict[str, tuple[str, ...]]] = IncomingRecord.column_sources | {
        "description": ("description",),
        "website": ("video_url",),
        "logo_url": ("thumbnail_url",),
        "channel": ("channel",),
        "publish_date": ("publish_date",),
    }

    title: str = Field(..., min_length=1, validation_alias=AliasChoices("title", "name"))
    description: str = ""
    video_url: str | None = Field(
        None,
        validate_default=True,
        validation_alias=AliasChoices("videoUrl", "youtubeUrl", "video_url", "youtube_url", "url"))
    thumbnail_url: str | None = None
    channel: str | None = None
    publish_date: datetime | None = None

    @field_validator("description", mode="before")
    @classmethod
    def _text_none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("video_url", mode="after")
    @classmethod
    def _require_url(cls, v: str | None) -> str:
        if not v:
            raise ValueError("videoUrl/youtubeUrl is required")
        return v

    @field_validator("publish_date", mode="before")
    @classmethod
    def _blank_date(cls, v: Any) -> Any:
        return None if isinstance(v, str) and not v.strip() else v

    @property
    def display_name(self) -> str:
        return self.title

    def to_values(self) -> dict[str, Any]:
        return self._common_values() | {
            "description": self.description,
            "website": self.video_url,
            "logo_url": self.thumbnail_url,
            "channel": self.channel,
            "publish_date": self.publish_date,
        }


RECORD_MODELS: dict[EntityKind, type[IncomingRecord]] = {
    EntityKind.tools: IncomingTool,
    EntityKind.news: IncomingNews,
    EntityKind.videos: IncomingVideo,
}


def record_label(raw: Any, position: int) -> str:
    """에러 메시지에 쓸 레코드 이름(slug > name > title > 순번)."""
    if isinstance(raw, dict):
        for key in ("slug", "name", "title"):
            value = raw.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return f"#{position}"


def parse_record(kind: EntityKind, raw: Any, position: int) -> IncomingRecord:
    """
    원본 dict를 종류에 맞는 레코드 모델로 검증하는 함수.
    Args:
        kind: EntityKind
        raw: Any (시트 한 행)
        position: int (1부터 시작하는 배치 내 순번)
    Returns:
        IncomingRecord
    Raises:
        RecordValidationError: 필수값 누락/형식 오류
    """
    label = record_label(raw, position)
    if not isinstance(raw, dict):
        raise RecordValidationError(label, "record must be an object")
    try:
        return RECORD_MODELS[kind].model_validate(raw)
    except ValidationError as e:
        reasons = []
        for err in e.errors():
            loc = ".".join(str(p) for p in err.get("loc", ())) or "record"
            reasons.append(f"{loc}: {err.get('msg')}")
        raise RecordValidationError(label, "; ".join(reasons))
