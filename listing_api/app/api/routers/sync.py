from fastapi import APIRouter, Body, Depends, status
from fastapi.responses import JSONResponse
from typing import Any
from listing_api.app.api.deps import get_pipeline_resolver, PipelineResolver
from listing_api.app.domain.models import EntityKind, SyncResult
from listing_api.app.models.schemas import SyncRequest
from listing_api.app.platform.errors import error_envelope
from listing_api.app.platform.logging import request_id_ctx
from listing_api.app.security.guards import require_api_key
import logging
logger = logging.getLogger(__name__)

router = APIRouter(tags=["sync"], dependencies=[Depends(require_api_key)])


def sync_status_code(result: SyncResult) -> int:
    """
    200: 에러 없음
    207: 일부 레코드만 실패
    400: 모든 레코드가 입력 검증에서 탈락
    """
    if result.errors == 0:
        return status.HTTP_200_OK
    if result.total > 0 and result.rejected == result.total:
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_207_MULTI_STATUS


@router.post(
    "/{kind}/sync-from-sheet",
    summary="시트 동기화",
    description=(
        "스프레드시트 행들을 DB에 upsert(slug 기준)하고 승인된 행은 검색 인덱스에 반영합니다. "
        "레코드 단위로 실패를 격리하며 일부 실패 시 207을 돌려줍니다."
    ),
    operation_id="syncFromSheet",
    status_code=200,
    responses={
        200: {
            "description": "전체 성공",
            "content": {
                "application/json": {
                    "example": {
                        "total": 2, "inserted": 1, "updated": 1, "errors": 0, "rejected": 0,
                        "errorMessages": [], "success": True,
                        "message": "Successfully synced 2 records"
                    }
                }
            },
        },
        207: {
            "description": "일부 실패",
            "content": {
                "application/json": {
                    "example": {
                        "total": 5, "inserted": 4, "updated": 0, "errors": 1, "rejected": 1,
                        "errorMessages": ["#3: title: Field required"], "success": False,
                        "message": "Synced with 1 errors"
                    }
                }
            },
        },
        400: {"description": "items 누락/빈 배열 또는 모든 레코드 검증 실패"},
        401: {"description": "API 키 불일치"},
    },
)
async def sync_from_sheet(
    kind: EntityKind,
    payload: Any = Body(None),
    resolver: PipelineResolver = Depends(get_pipeline_resolver)):
    items = SyncRequest.model_validate(payload).items if isinstance(payload, dict) else None
    if not isinstance(items, list) or not items:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_envelope(
                "items must be a non-empty array",
                code="INVALID_INPUT",
                trace_id=request_id_ctx.get()))

    logger.info("SyncRequest: kind=%s items=%d", kind.value, len(items),
                extra={"kind": kind.value, "total": len(items)})
    svc = resolver.for_kind(kind)
    result = await svc.sync_batch(items)
    return JSONResponse(status_code=sync_status_code(result), content=result.to_response())
