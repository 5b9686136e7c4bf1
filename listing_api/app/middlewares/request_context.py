import time, uuid, logging
from starlette.middleware.base import BaseHTTPMiddleware
from listing_api.app.platform.logging import request_id_ctx

access_logger = logging.getLogger("uvicorn.access")

class RequestContextMiddleware(BaseHTTPMiddleware):
    """요청마다 request_id를 ContextVar에 심고, 끝나면 access 로그를 남긴다."""

    async def dispatch(self, request, call_next):
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = request_id_ctx.set(rid)
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            ms = round((time.perf_counter() - start) * 1000, 2)
            access_logger.info(
                "%s %s %s %.2fms", request.method, request.url.path, status_code, ms,
                extra={
                    "http_method": request.method,
                    "path": request.url.path,
                    "status_code": status_code,
                    "duration_ms": ms,
                    "client_ip": request.client.host if request.client else None,
                },
            )
            request_id_ctx.reset(token)
        response.headers["X-Request-ID"] = rid
        return response
