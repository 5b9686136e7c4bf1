from fastapi import APIRouter, Depends
from opensearchpy import AsyncOpenSearch
from listing_api.app.api.deps import get_opensearch
from listing_api.app.models.schemas import HealthResponse

router = APIRouter(prefix="/health", tags=["health"])

@router.get("", response_model=HealthResponse)
async def health(os: AsyncOpenSearch | None = Depends(get_opensearch)):
    return HealthResponse(ok=True, search_backend="opensearch" if os is not None else "database")
