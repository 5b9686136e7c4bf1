from fastapi import Header, HTTPException, status
from listing_api.app.platform.config import settings

def require_api_key(x_api_key: str | None = Header(None, alias="X-API-Key")):
    """
    시트 동기화/인덱스 관리 API 보호.
    API_KEY가 설정되지 않은 환경(로컬 등)에서는 검사하지 않는다.
    """
    expected = settings.API_KEY
    if not expected:
        return
    if x_api_key != expected:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key")
