from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
from urllib.parse import quote_plus


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="ledgerapi/.env",
        env_file_encoding="utf-8",
        extra="allow",
    )
    # Application
    APP_NAME: str = "Campus Ledger API"
    PROJECT_NAME: str = "Campus Ledger API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: List[str] = ["*"]

    # Database
    POSTGRES_HOST: str = ""
    POSTGRES_PORT: int = 5432
    POSTGRES_USERNAME: str = ""
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DATABASE: str = ""
    POSTGRES_SCHEMA: str = "ledger"

    # 직접 지정하면 POSTGRES_* 조합보다 우선 (테스트/로컬 sqlite 용)
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    @property
    def database_url(self) -> str:
        """Construct database URL from individual components"""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        # URL encode the password to handle special characters
        encoded_password = quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql+psycopg2://{self.POSTGRES_USERNAME}:{encoded_password}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DATABASE}"

    # Security
    SECRET_KEY: str = ""
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Ledger
    CURRENCY_SYMBOL: str = "PL"
    TREASURY_WALLET_ID: str = "11111111-1111-1111-1111-111111111111"
    TREASURY_OWNER_ID: str = "00000000-0000-0000-0000-000000000000"
    MINT_REASON: str = "Minted by System"

    # Reward events
    CLAIM_TICKET_ALGORITHM: str = "HS256"
    CLAIM_TICKET_CLOCK_TOLERANCE_SECONDS: int = 10  # 네트워크 지연 보정
    DEFAULT_QR_REFRESH_RATE: int = 60

    # Orders
    DELIVERY_CODE_DIGITS: int = 4

    # Redis (cache / rate limit)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None
    REDIS_ENABLED: bool = True
    REDIS_RETRY_BACKOFF_SECONDS: int = 30  # 연결 실패 후 재시도까지 대기
    CACHE_TTL_SHORT: int = 300  # 5분 (피드, 이벤트 목록)
    CACHE_TTL_MEDIUM: int = 1800  # 30분 (상품 상세)
    CACHE_TTL_LONG: int = 86400  # 24시간 (설정, 광고 패키지)

    # AWS / SQS (badge re-evaluation events)
    AWS_REGION: str = "ap-northeast-2"
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    SQS_ENDPOINT_URL: Optional[str] = None
    SQS_BADGE_EVENTS_QUEUE: str = "ledger-badge-events"
    BADGE_EVENTS_ENABLED: bool = False

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = False
    RATE_LIMIT_REQUESTS_PER_MINUTE: int = 60
    RATE_LIMIT_WINDOW_SECONDS: int = 60


settings = Settings()
