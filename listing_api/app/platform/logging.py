# listing_api/app/platform/logging.py
import os
import json
import logging
import logging.config
from contextvars import ContextVar
from datetime import datetime, timezone

# ===== Request ID =====
request_id_ctx = ContextVar("request_id", default="-")

class RequestIDFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx.get()
        return True

# logger.*(..., extra={...})로 넘기는 필드 중 JSON에 싣는 것들
EXTRA_FIELDS = (
    # 검색/동기화
    "kind", "index", "operation", "object_id", "slug",
    "total", "inserted", "updated", "errors", "fallback",
    # access 로그
    "http_method", "path", "status_code", "duration_ms", "client_ip",
)

# ===== JSON Formatter =====
class JsonFormatter(logging.Formatter):
    """
    JSON 라인 출력: Logstash에서 바로 파싱 가능.
    동기화/검색 로그의 extra 필드(kind, operation, object_id 등)도 함께 싣는다.
    """
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
                .isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
        }

        # 예외 스택
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        for k in EXTRA_FIELDS:
            v = getattr(record, k, None)
            if v is not None:
                payload[k] = v

        return json.dumps(payload, ensure_ascii=False, default=str)

# ===== Text Formatter (로컬 확인용) =====
TEXT_DEFAULT = "%(asctime)s %(levelname)s [%(name)s] [%(request_id)s] %(message)s"
TEXT_ACCESS = "%(asctime)s %(levelname)s [access] [%(request_id)s] %(message)s"

def _file_handler(filename: str, formatter: str, level: str) -> dict:
    return {
        "class": "logging.handlers.TimedRotatingFileHandler",
        "level": level,
        "formatter": formatter,
        "filename": filename,
        "when": "midnight",
        "backupCount": 14,
        "encoding": "utf-8",
        "filters": ["request_id"],
    }

def setup_logging(
    *,
    log_to_file: bool = False,
    log_dir: str = "/var/log/app",
    as_json: bool = True,
    level: str = "INFO",
) -> None:
    """
    - app 로그: root, uvicorn.error
    - access 로그: uvicorn.access (RequestContextMiddleware가 기록)
    - 중복 방지: uvicorn.* 는 propagate=False
    """
    os.environ.setdefault("TZ", "UTC")

    app_formatter = "json" if as_json else "text_default"
    access_formatter = "json" if as_json else "text_access"

    handlers = {
        "console_app": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": app_formatter,
            "filters": ["request_id"],
        },
        "console_access": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": access_formatter,
            "filters": ["request_id"],
        },
    }
    app_handlers = ["console_app"]
    access_handlers = ["console_access"]

    if log_to_file:
        os.makedirs(log_dir, exist_ok=True)
        handlers["file_app"] = _file_handler(f"{log_dir}/app.log", app_formatter, level)
        handlers["file_access"] = _file_handler(f"{log_dir}/access.log", access_formatter, level)
        app_handlers.append("file_app")
        access_handlers.append("file_access")

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "request_id": {"()": RequestIDFilter}
        },
        "formatters": {
            "json": {"()": JsonFormatter},
            "text_default": {"format": TEXT_DEFAULT},
            "text_access": {"format": TEXT_ACCESS},
        },
        "handlers": handlers,
        "loggers": {
            "": {"handlers": app_handlers, "level": level, "propagate": False},
            "uvicorn.error": {"handlers": app_handlers, "level": level, "propagate": False},
            "uvicorn.access": {"handlers": access_handlers, "level": level, "propagate": False},
            # OpenSearch 클라이언트의 요청 단위 로그는 너무 많다
            "opensearch": {"level": "WARNING"},
        },
    })
