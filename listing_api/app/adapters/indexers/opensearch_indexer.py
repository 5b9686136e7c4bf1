"""
SearchDocument들을 OpenSearch에 색인하는 IndexPort 구현체
"""

from __future__ import annotations
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Sequence
from opensearchpy import AsyncOpenSearch, helpers
from opensearchpy.exceptions import NotFoundError
from listing_api.app.adapters.opensearch_client import translate_errors
from listing_api.app.domain.ports import IndexPort
from listing_api.app.domain.models import (
    SearchDocument, IndexResult, IndexErrorItem
)
from listing_api.app.platform.config import MAX_SYNC_BATCH_SIZE

logger = logging.getLogger(__name__)


class OpenSearchIndexer(IndexPort):

    def __init__(
        self,
        client: AsyncOpenSearch,
        index_name: str,
        batch_size: int = MAX_SYNC_BATCH_SIZE,
        refresh: bool = False) -> None:
        self.client = client
        self.index_name = index_name
        self.batch_size = min(batch_size, MAX_SYNC_BATCH_SIZE)
        self.refresh = refresh
        self._load_index_schema()

    def _load_index_schema(self) -> None:
        """
            인덱스 스키마를 JSON 파일에서 로드한다.
        """
        root_dir = Path(os.path.dirname(__file__)).resolve().parents[2]
        schema_path = root_dir / "resources/schema/listing_index.json"
        with open(schema_path, 'r', encoding='utf-8') as f:
            self.index_schema = json.load(f)

    async def configure_schema(self) -> None:
        """
            로드된 스키마를 인덱스에 반영한다.
            - 인덱스가 없으면 스키마(settings + mappings)로 생성
            - 있으면 mappings만 다시 반영(analysis 설정은 열린 인덱스에서 바꿀 수 없음)
            반복 호출해도 결과가 같다.
        """
        with translate_errors("configure_schema"):
            if not await self.client.indices.exists(index=self.index_name):
                await self.client.indices.create(index=self.index_name, body=self.index_schema)
                logger.info("index created: %s", self.index_name, extra={"index": self.index_name})
                return
            await self.client.indices.put_mapping(
                index=self.index_name, body=self.index_schema["mappings"])
            logger.info("index mappings updated: %s", self.index_name, extra={"index": self.index_name})

    async def upsert_one(self, doc: SearchDocument) -> None:
        """
            문서 1건을 object_id 기준으로 덮어쓴다(last-write-wins).
        """
        with translate_errors("upsert_one", doc.object_id):
            await self.client.index(
                index=self.index_name,
                id=doc.object_id,
                body=doc.model_dump(mode="json"),
                refresh=self._refresh_param(),
            )

    async def upsert_many(self, docs: Sequence[SearchDocument]) -> IndexResult:
        """
            문서들을 batch_size 단위 bulk 요청으로 색인한다.

            Args:
                docs: SearchDocument들
            Returns:
                색인 결과(성공 건수, 실패 상세)
        """
        indexed = 0
        err_items: list[IndexErrorItem] = []
        for start in range(0, len(docs), self.batch_size):
            chunk = docs[start:start + self.batch_size]
            ok, errors = await self._bulk(chunk)
            indexed += ok
            err_items.extend(self._to_error_items(errors))
        if err_items:
            logger.warning(
                "bulk upsert finished with errors: index=%s indexed=%d errors=%d",
                self.index_name, indexed, len(err_items),
                extra={"index": self.index_name, "errors": len(err_items)},
            )
        return IndexResult(indexed=indexed, errors=err_items)

    async def delete_one(self, object_id: str) -> None:
        """
            object_id 문서를 삭제한다. 없는 문서/인덱스면 아무것도 하지 않는다.
        """
        with translate_errors("delete_one", object_id):
            try:
                await self.client.delete(
                    index=self.index_name, id=object_id, refresh=self._refresh_param())
            except NotFoundError:
                logger.debug("delete_one: %s not in %s", object_id, self.index_name)

    async def clear_all(self) -> None:
        """
            인덱스의 모든 문서를 지운다. 전체 재색인의 첫 단계에서만 쓴다.
        """
        with translate_errors("clear_all"):
            try:
                await self.client.delete_by_query(
                    index=self.index_name,
                    body={"query": {"match_all": {}}},
                    conflicts="proceed",
                    refresh=True,
                )
            except NotFoundError:
                logger.info("clear_all: index %s does not exist yet", self.index_name)

    # ================== internal helpers ==================
    async def _bulk(self, chunk: Sequence[SearchDocument]) -> tuple[int, List[Dict[str, Any]]]:
        def actions():
            for d in chunk:
                yield {
                    "_op_type": "index",
                    "_index": self.index_name,
                    "_id": d.object_id,
                    "_source": d.model_dump(mode="json"),
                }

        with translate_errors("upsert_many"):
            ok, errors = await helpers.async_bulk(
                self.client, actions(), chunk_size=self.batch_size, raise_on_error=False)
        return ok, errors or []

    def _to_error_items(self, errors: List[Dict[str, Any]]) -> list[IndexErrorItem]:
        items = []
        for e in errors:
            detail = e.get("index", {})
            items.append(IndexErrorItem(
                doc_id=str(detail.get("_id", "")),
                reason=str(detail.get("error", e))))
        return items

    def _refresh_param(self) -> str:
        return "true" if self.refresh else "false"
