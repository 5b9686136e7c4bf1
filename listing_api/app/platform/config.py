from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()

# 검색 서비스 bulk 요청 1회당 최대 문서 수
MAX_SYNC_BATCH_SIZE = 1000


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = "listing-search-api"
    DEBUG: bool = False

    # ---- Entity Store ----
    DATABASE_URL: str = "sqlite+aiosqlite:///./listings.db"
    DATABASE_ECHO: bool = False

    # ---- OpenSearch (HOST가 비어 있으면 DB 검색으로만 동작) ----
    OPENSEARCH_HOST: str = ""
    OPENSEARCH_USER: str | None = None
    OPENSEARCH_PASSWORD: str | None = None
    OPENSEARCH_INDEX_PREFIX: str = "listings"
    OPENSEARCH_TIMEOUT: float = Field(10.0, gt=0)
    OPENSEARCH_VERIFY_CERTS: bool = False

    # ---- 동기화 ----
    SYNC_BATCH_SIZE: int = Field(MAX_SYNC_BATCH_SIZE, gt=0, le=MAX_SYNC_BATCH_SIZE)
    REBUILD_ON_STARTUP: bool = False

    # ---- 관리자 API ----
    API_KEY: str | None = None

    # ---- 로깅 ----
    LOG_TO_FILE: bool = False
    LOG_DIR: str = "/var/log/app"
    LOG_AS_JSON: bool = True
    LOG_LEVEL: str = "INFO"

    @property
    def search_enabled(self) -> bool:
        return bool(self.OPENSEARCH_HOST.strip())


settings = Settings()
