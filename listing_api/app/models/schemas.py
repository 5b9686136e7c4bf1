from pydantic import BaseModel, Field
from typing import Any, Dict


class SyncRequest(BaseModel):
    """
    시트 동기화 요청 바디.
    items는 라우터에서 직접 검사한다(누락/비배열/빈 배열 -> 400).
    """
    items: Any = Field(None, description="시트 행 배열(camelCase 키)")


class ApprovalRequest(BaseModel):
    approved: bool = Field(..., description="승인 여부")


class IndexResponse(BaseModel):
    """
    인덱스 관리 응답
    """
    success: bool = Field(..., description="성공 여부")
    message: str = Field(..., description="결과 메시지")
    data: Dict[str, Any] = Field(default_factory=dict, description="작업 결과")


class HealthResponse(BaseModel):
    ok: bool
    search_backend: str


class ListingResponse(BaseModel):
    success: bool = True
    data: Dict[str, Any]
