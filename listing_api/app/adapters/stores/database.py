"""Persistence: async engine, session factory, and schema bootstrap for the Entity Store."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from listing_api.app.adapters.stores.tables import Base
from listing_api.app.platform.config import Settings

logger = logging.getLogger(__name__)


def build_engine(settings: Settings) -> AsyncEngine:
    """DATABASE_URL로 async 엔진을 만든다. (sqlite+aiosqlite / postgresql+asyncpg)"""
    kwargs = {"echo": settings.DATABASE_ECHO, "pool_pre_ping": True}
    if not settings.DATABASE_URL.startswith("sqlite"):
        kwargs.update(pool_size=10, max_overflow=20, pool_recycle=3600)
    return create_async_engine(settings.DATABASE_URL, **kwargs)


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_schema(engine: AsyncEngine) -> None:
    """테이블이 없으면 만든다(이미 있으면 건드리지 않음)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("entity store schema ready: tables=%s", sorted(Base.metadata.tables))
