from fastapi import APIRouter, Depends
from listing_api.app.api.deps import get_pipeline_resolver, PipelineResolver
from listing_api.app.domain.models import EntityKind
from listing_api.app.models.schemas import IndexResponse
from listing_api.app.security.guards import require_api_key
import logging
logger = logging.getLogger(__name__)


router = APIRouter(prefix="/index", tags=["index"], dependencies=[Depends(require_api_key)])


@router.post(
    "/{kind}/configure",
    summary="인덱스 설정 반영",
    description="종류별 검색 인덱스를 만들거나 매핑을 다시 반영합니다. 여러 번 호출해도 됩니다.",
    operation_id="configureIndex",
    status_code=200,
    response_model=IndexResponse,
    responses={
        200: {
            "description": "설정 반영 결과",
            "content": {
                "application/json": {
                    "examples": {
                        "configured": {
                            "summary": "반영 성공",
                            "value": {"success": True, "message": "인덱스 설정 반영",
                                      "data": {"kind": "tools", "configured": True}}
                        },
                        "database_only": {
                            "summary": "검색 백엔드 미설정",
                            "value": {"success": True, "message": "검색 백엔드 미설정",
                                      "data": {"kind": "tools", "configured": False}}
                        }
                    }
                }
            },
        },
        503: {"description": "검색 백엔드 장애/인증 실패"},
    },
)
async def configure(kind: EntityKind, resolver: PipelineResolver = Depends(get_pipeline_resolver)):
    logger.info("ConfigureRequest: kind=%s", kind.value, extra={"kind": kind.value})
    configured = await resolver.for_kind(kind).configure()
    message = "인덱스 설정 반영" if configured else "검색 백엔드 미설정"
    return IndexResponse(success=True, message=message, data={"kind": kind.value, "configured": configured})


@router.post(
    "/{kind}/rebuild",
    summary="전체 재색인",
    description="인덱스를 비우고 DB의 승인된 행 전체를 다시 색인합니다.",
    operation_id="rebuildIndex",
    status_code=200,
    response_model=IndexResponse,
    responses={
        200: {
            "description": "재색인 결과",
            "content": {
                "application/json": {
                    "example": {"success": True, "message": "재색인 완료",
                                "data": {"kind": "tools", "indexed": 120, "errors": []}}
                }
            },
        },
        503: {"description": "검색 백엔드 장애/인증 실패"},
    },
)
async def rebuild(kind: EntityKind, resolver: PipelineResolver = Depends(get_pipeline_resolver)):
    logger.info("RebuildRequest: kind=%s", kind.value, extra={"kind": kind.value})
    result = await resolver.for_kind(kind).rebuild_all()
    return IndexResponse(
        success=not result.errors,
        message="재색인 완료" if not result.errors else "재색인 일부 실패",
        data={"kind": kind.value, **result.model_dump()})
