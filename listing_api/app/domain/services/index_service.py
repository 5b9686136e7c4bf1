"""
IndexService
==============

Entity Store(관계형 DB)와 검색 인덱스를 맞춰 주는 동기화 오케스트레이터.

Flow:
    시트 레코드 → 검증(IncomingRecord) → Entity Store upsert → Transformer → Indexer

- DB가 원본(source of truth)이고 인덱스는 언제든 DB에서 다시 만들 수 있다.
- 레코드 1건의 실패(검증/DB/인덱스)는 그 레코드만 에러로 기록하고 다음 레코드를 계속 처리한다.
- indexer가 없으면(OpenSearch 미설정) DB만 갱신한다.

예시:
    svc = IndexService(EntityKind.tools, store, ListingTransformer(), indexer)
    result = await svc.sync_batch(items)
    # 전체 재색인:
    result = await svc.rebuild_all()
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from listing_api.app.domain.ports import IndexPort, ListingStorePort, TransformPort
from listing_api.app.domain.models import (
    EntityKind,
    IndexResult,
    ListableItem,
    SyncResult,
)
from listing_api.app.domain.records import parse_record, record_label
from listing_api.app.platform.config import MAX_SYNC_BATCH_SIZE
from listing_api.app.platform.exceptions import (
    RecordValidationError,
    ResourceNotFound,
    SearchBackendError,
)

logger = logging.getLogger(__name__)


class IndexService:
    """종류(tools/news/videos) 하나의 DB 행과 검색 문서를 맞추는 유스케이스 서비스."""

    def __init__(
        self,
        kind: EntityKind,
        store: ListingStorePort,
        transformer: TransformPort,
        indexer: IndexPort | None = None,
        batch_size: int = MAX_SYNC_BATCH_SIZE,
    ) -> None:
        """
        인덱스 서비스 초기화.
        Args:
            kind: EntityKind            : 대상 엔티티 종류
            store: ListingStorePort     : Entity Store
            transformer: TransformPort  : 행 -> 색인 문서 변환
            indexer: IndexPort | None   : 검색 인덱스 쓰기(None이면 DB만 갱신)
            batch_size: int             : 재색인 bulk 단위(최대 1000)
        """
        self.kind = kind
        self.store = store
        self.transformer = transformer
        self.indexer = indexer
        self.batch_size = max(1, min(batch_size, MAX_SYNC_BATCH_SIZE))

    async def configure(self) -> bool:
        """
        인덱스 설정/매핑을 반영한다. 여러 번 불러도 된다.
        Returns:
            bool: 실제로 반영했으면 True, indexer가 없으면 False
        """
        if self.indexer is None:
            logger.info("configure skipped: no search backend (kind=%s)", self.kind.value,
                        extra={"kind": self.kind.value})
            return False
        await self.indexer.configure_schema()
        logger.info("index configured (kind=%s)", self.kind.value, extra={"kind": self.kind.value})
        return True

    async def rebuild_all(self) -> IndexResult:
        """
        인덱스를 비우고 승인된 행 전체를 batch_size 단위로 다시 색인한다.
        Returns:
            IndexResult: 색인 건수와 실패 목록
        """
        if self.indexer is None:
            logger.warning("rebuild skipped: no search backend (kind=%s)", self.kind.value,
                           extra={"kind": self.kind.value})
            return IndexResult(indexed=0)

        await self.indexer.clear_all()
        result = IndexResult(indexed=0)
        async for batch in self.store.iter_approved_batches(self.batch_size):
            docs = [self.transformer.transform(item) for item in batch]
            part = await self.indexer.upsert_many(docs)
            result.indexed += part.indexed
            result.errors.extend(part.errors)

        logger.info(
            "rebuild finished: kind=%s indexed=%d errors=%d",
            self.kind.value, result.indexed, len(result.errors),
            extra={"kind": self.kind.value, "total": result.indexed, "errors": len(result.errors)},
        )
        return result

    async def sync_one(self, raw: Any) -> SyncResult:
        return await self.sync_batch([raw])

    async def sync_batch(self, raws: Sequence[Any]) -> SyncResult:
        """
        시트 레코드들을 입력 순서대로 하나씩 DB와 인덱스에 반영한다.
        Args:
            raws: 시트 행(dict)들
        Returns:
            SyncResult: total/inserted/updated/errors/errorMessages
        """
        result = SyncResult(total=len(raws))
        for position, raw in enumerate(raws, start=1):
            try:
                created = await self._sync_record(raw, position)
            except RecordValidationError as e:
                logger.warning("sync record rejected: %s", e, extra={"kind": self.kind.value})
                result.add_error(str(e), rejected=True)
                continue
            except SearchBackendError as e:
                label = record_label(raw, position)
                logger.error(
                    "sync record index failed: %s: %s", label, e,
                    extra={"kind": self.kind.value, "operation": e.operation, "object_id": e.object_id},
                )
                result.add_error(f"{label}: {e}")
                continue
            except Exception as e:
                label = record_label(raw, position)
                logger.exception("sync record failed: %s", label, extra={"kind": self.kind.value})
                result.add_error(f"{label}: {e}")
                continue

            if created:
                result.inserted += 1
            else:
                result.updated += 1

        log = logger.info if result.errors == 0 else logger.warning
        log(
            "sync finished: kind=%s total=%d inserted=%d updated=%d errors=%d",
            self.kind.value, result.total, result.inserted, result.updated, result.errors,
            extra={
                "kind": self.kind.value,
                "total": result.total,
                "inserted": result.inserted,
                "updated": result.updated,
                "errors": result.errors,
            },
        )
        return result

    async def apply_approval(self, slug: str, approved: bool) -> ListableItem:
        """
        승인 상태를 바꾸고 인덱스에 반영한다(승인 -> upsert, 해제 -> 삭제).
        Raises:
            ResourceNotFound: slug 행이 없음
        """
        item = await self.store.set_approval(slug, approved)
        await self._reflect(item)
        logger.info("approval changed: kind=%s slug=%s approved=%s", self.kind.value, slug, approved,
                    extra={"kind": self.kind.value, "slug": slug})
        return item

    async def remove(self, slug: str) -> ListableItem:
        """
        인덱스 문서를 먼저 지우고 행을 지운다.
        인덱스 삭제가 실패하면 행은 남아 있으므로 같은 요청을 다시 보내면 된다.
        Raises:
            ResourceNotFound: slug 행이 없음
            SearchBackendError: 인덱스 삭제 실패(행은 지우지 않음)
        """
        existing = await self.store.get_by_slug(slug)
        if existing is None:
            raise ResourceNotFound(self.kind.value, f"{self.kind.value} '{slug}' not found")
        if self.indexer is not None:
            await self.indexer.delete_one(existing.object_id)
        item = await self.store.delete(slug)
        logger.info("listing removed: kind=%s slug=%s", self.kind.value, slug,
                    extra={"kind": self.kind.value, "slug": slug})
        return item

    # ================== internal helpers ==================
    async def _sync_record(self, raw: Any, position: int) -> bool:
        """
        레코드 1건 처리. 새 행을 만들었으면 True, 기존 행을 고쳤으면 False.
        """
        record = parse_record(self.kind, raw, position)
        slug = record.natural_key

        existing = await self.store.get_by_slug(slug)
        if existing is None:
            # 승인 여부가 없으면 미승인으로 들어간다
            item = await self.store.insert(record.to_values())
        else:
            # 레코드에 없는 컬럼(모더레이션으로 바뀐 승인 상태 등)은 유지
            item = await self.store.update(slug, record.update_values())

        await self._reflect(item)
        return existing is None

    async def _reflect(self, item: ListableItem) -> None:
        """행 상태를 인덱스에 반영한다. 승인된 행만 검색에 노출된다."""
        if self.indexer is None:
            return
        doc = self.transformer.transform(item)
        if item.is_approved:
            await self.indexer.upsert_one(doc)
        else:
            await self.indexer.delete_one(doc.object_id)
