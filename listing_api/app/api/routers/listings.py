from fastapi import APIRouter, Depends
from listing_api.app.api.deps import get_pipeline_resolver, PipelineResolver
from listing_api.app.domain.models import EntityKind
from listing_api.app.models.schemas import ApprovalRequest, ListingResponse
from listing_api.app.platform.exceptions import ResourceNotFound
from listing_api.app.security.guards import require_api_key
import logging
logger = logging.getLogger(__name__)

router = APIRouter(tags=["listings"])


@router.get(
    "/{kind}/{slug}",
    summary="목록 상세",
    description="승인된 항목만 조회됩니다.",
    operation_id="getListing",
    response_model=ListingResponse,
    responses={404: {"description": "없거나 승인되지 않은 항목"}},
)
async def get_listing(kind: EntityKind, slug: str, resolver: PipelineResolver = Depends(get_pipeline_resolver)):
    item = await resolver.for_kind(kind).store.get_by_slug(slug, approved_only=True)
    if item is None:
        raise ResourceNotFound(kind.value, f"{kind.value} '{slug}' not found")
    return ListingResponse(data=item.model_dump(mode="json"))


@router.patch(
    "/{kind}/{slug}/approval",
    summary="승인 상태 변경",
    description="승인하면 검색 인덱스에 올리고, 해제하면 인덱스에서 내립니다.",
    operation_id="setListingApproval",
    response_model=ListingResponse,
    dependencies=[Depends(require_api_key)],
    responses={404: {"description": "없는 항목"}, 401: {"description": "API 키 불일치"}},
)
async def set_approval(
    kind: EntityKind,
    slug: str,
    req: ApprovalRequest,
    resolver: PipelineResolver = Depends(get_pipeline_resolver)):
    item = await resolver.for_kind(kind).apply_approval(slug, req.approved)
    return ListingResponse(data=item.model_dump(mode="json"))


@router.delete(
    "/{kind}/{slug}",
    summary="목록 삭제",
    description="DB 행과 검색 문서를 함께 삭제합니다.",
    operation_id="deleteListing",
    response_model=ListingResponse,
    dependencies=[Depends(require_api_key)],
    responses={404: {"description": "없는 항목"}, 401: {"description": "API 키 불일치"}},
)
async def delete_listing(kind: EntityKind, slug: str, resolver: PipelineResolver = Depends(get_pipeline_resolver)):
    item = await resolver.for_kind(kind).remove(slug)
    logger.info("DeleteRequest: kind=%s slug=%s", kind.value, slug, extra={"kind": kind.value, "slug": slug})
    return ListingResponse(data={"slug": item.slug, "deleted": True})
