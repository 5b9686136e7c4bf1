"""
Entity Store 테이블 정의 (SQLAlchemy 2.x declarative).

종류(tools/news/videos)마다 테이블이 하나씩이며 공통 컬럼은 ListingColumns에 둔다.
배열 컬럼(tags 등)은 JSON으로 저장해 PostgreSQL/SQLite 모두에서 동작한다.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, ClassVar

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from listing_api.app.domain.models import EntityKind


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy declarative models."""


class ListingColumns:
    """목록 엔티티 공통 컬럼."""
    kind: ClassVar[EntityKind]

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    description: Mapped[str | None] = mapped_column(Text)
    short_description: Mapped[str | None] = mapped_column(String(500))
    category: Mapped[str | None] = mapped_column(String(100), index=True)
    tags: Mapped[list[str] | None] = mapped_column(JSON)
    website: Mapped[str | None] = mapped_column(String(500))
    logo_url: Mapped[str | None] = mapped_column(String(500))
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_hot: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    likes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_approved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class ToolRow(ListingColumns, Base):
    __tablename__ = "tools"
    kind = EntityKind.tools

    key_features: Mapped[list[str] | None] = mapped_column(JSON)
    use_cases: Mapped[list[str] | None] = mapped_column(JSON)
    audience: Mapped[list[str] | None] = mapped_column(JSON)
    access_type: Mapped[list[str] | None] = mapped_column(JSON)
    pricing_type: Mapped[str | None] = mapped_column(String(50))
    faqs: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON)


class NewsRow(ListingColumns, Base):
    __tablename__ = "news"
    kind = EntityKind.news

    source: Mapped[str | None] = mapped_column(String(100))
    publish_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class VideoRow(ListingColumns, Base):
    __tablename__ = "videos"
    kind = EntityKind.videos

    channel: Mapped[str | None] = mapped_column(String(100))
    publish_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


TABLES: dict[EntityKind, type[ListingColumns]] = {
    EntityKind.tools: ToolRow,
    EntityKind.news: NewsRow,
    EntityKind.videos: VideoRow,
}
