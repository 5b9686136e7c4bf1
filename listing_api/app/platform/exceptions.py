class DomainError(Exception):
    """도메인/유즈케이스 공통 베이스 예외"""
    pass

class ResourceNotFound(DomainError):
    def __init__(self, resource: str, detail: str | None = None):
        super().__init__(detail or f"{resource} not found")
        self.resource = resource

class InvalidInput(DomainError):
    def __init__(self, message: str):
        super().__init__(message)

class RecordValidationError(InvalidInput):
    """시트 레코드 1건의 필수값 누락/형식 오류. 배치를 중단시키지 않는다."""
    def __init__(self, label: str, reason: str):
        super().__init__(f"{label}: {reason}")
        self.label = label
        self.reason = reason


class SearchBackendError(DomainError):
    """
    검색 서비스(OpenSearch) 호출 실패.
    호출한 작업 이름과 문서 ID를 함께 실어 호출자가 로그/폴백을 결정하게 한다.
    """
    def __init__(self, operation: str, reason: str, object_id: str | None = None):
        target = f" object_id={object_id}" if object_id else ""
        super().__init__(f"{operation} failed{target}: {reason}")
        self.operation = operation
        self.object_id = object_id
        self.reason = reason

class ServiceUnavailable(SearchBackendError):
    """연결 실패, 타임아웃, 5xx 등 일시적 장애"""
    pass

class InvalidCredentials(SearchBackendError):
    """인증 정보 누락/거부(401, 403)"""
    pass
