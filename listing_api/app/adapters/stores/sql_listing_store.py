"""
ListingStorePort의 SQLAlchemy(async) 구현체.

작업마다 세션/트랜잭션을 따로 연다. 시트 동기화에서 레코드 1건의 실패가
다른 레코드의 쓰기를 되돌리지 않도록 하기 위함이다(배치 단위 트랜잭션 없음).
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from listing_api.app.adapters.stores.tables import TABLES, ListingColumns
from listing_api.app.domain.models import EntityKind, ListableItem
from listing_api.app.domain.ports import ListingStorePort
from listing_api.app.platform.exceptions import ResourceNotFound

logger = logging.getLogger(__name__)


class SqlListingStore(ListingStorePort):

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession], kind: EntityKind) -> None:
        self._sessionmaker = sessionmaker
        self.kind = kind
        self.model: Any = TABLES[kind]

    # ================= 조회 =================

    async def get_by_slug(self, slug: str, *, approved_only: bool = False) -> ListableItem | None:
        stmt = select(self.model).where(self.model.slug == slug)
        if approved_only:
            stmt = stmt.where(self.model.is_approved.is_(True))
        async with self._sessionmaker() as session:
            row = (await session.execute(stmt.limit(1))).scalar_one_or_none()
            return self._to_item(row) if row is not None else None

    async def list_approved(self) -> list[ListableItem]:
        """승인된 전체 행(id 오름차순). DB 폴백 검색용."""
        stmt = select(self.model).where(self.model.is_approved.is_(True)).order_by(self.model.id)
        async with self._sessionmaker() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [self._to_item(r) for r in rows]

    async def iter_approved_batches(self, batch_size: int) -> AsyncIterator[list[ListableItem]]:
        """
        승인된 행을 batch_size 단위로 끊어서 돌려준다(id keyset 페이징).
        전체 재색인 시 메모리 사용을 배치 크기로 묶기 위함.
        """
        last_id = 0
        while True:
            stmt = (
                select(self.model)
                .where(self.model.is_approved.is_(True), self.model.id > last_id)
                .order_by(self.model.id)
                .limit(batch_size)
            )
            async with self._sessionmaker() as session:
                rows = (await session.execute(stmt)).scalars().all()
                batch = [self._to_item(r) for r in rows]
            if not batch:
                return
            yield batch
            last_id = batch[-1].id
            if len(batch) < batch_size:
                return

    # ================= 쓰기 =================

    async def insert(self, values: dict[str, Any]) -> ListableItem:
        async with self._sessionmaker() as session, session.begin():
            row = self.model(**self._columns(values))
            session.add(row)
            await session.flush()
            await session.refresh(row)
            item = self._to_item(row)
        logger.debug("store.insert: kind=%s slug=%s", self.kind.value, item.slug)
        return item

    async def update(self, slug: str, values: dict[str, Any]) -> ListableItem:
        async with self._sessionmaker() as session, session.begin():
            row = await self._get_row(session, slug)
            for key, value in self._columns(values).items():
                setattr(row, key, value)
            await session.flush()
            await session.refresh(row)
            item = self._to_item(row)
        logger.debug("store.update: kind=%s slug=%s", self.kind.value, slug)
        return item

    async def set_approval(self, slug: str, approved: bool) -> ListableItem:
        return await self.update(slug, {"is_approved": approved})

    async def delete(self, slug: str) -> ListableItem:
        async with self._sessionmaker() as session, session.begin():
            row = await self._get_row(session, slug)
            item = self._to_item(row)
            await session.delete(row)
        logger.debug("store.delete: kind=%s slug=%s", self.kind.value, slug)
        return item

    # ================= internal helpers =================

    async def _get_row(self, session: AsyncSession, slug: str) -> ListingColumns:
        stmt = select(self.model).where(self.model.slug == slug).limit(1)
        row = (await session.execute(stmt)).scalar_one_or_none()
        if row is None:
            raise ResourceNotFound(self.kind.value, f"{self.kind.value} '{slug}' not found")
        return row

    def _columns(self, values: dict[str, Any]) -> dict[str, Any]:
        """테이블에 없는 키는 버린다(예: news 레코드의 key_features)."""
        columns = self.model.__table__.columns.keys()
        return {k: v for k, v in values.items() if k in columns}

    def _to_item(self, row: ListingColumns) -> ListableItem:
        return ListableItem.model_validate(row)
