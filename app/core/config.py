from pydantic_settings import BaseSettings
from typing import List, Union
from pydantic import field_validator
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # API Settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Storefront Customer Auth API"
    ENVIRONMENT: str = "development"

    # Database Settings
    POSTGRES_USER: str = "user"
    POSTGRES_PASSWORD: str = "password"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: str = "5432"
    POSTGRES_DB: str = "storefront_db"

    @property
    def DATABASE_URL(self) -> str:
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Redis Settings (Celery broker and optional rate limit backend)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0

    @property
    def REDIS_URL(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # AWS SES Settings
    AWS_REGION: str = "eu-west-3"
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_SES_FROM_EMAIL: str = "noreply@example.com"

    # Public base URL of the storefront (used in instant access links)
    STOREFRONT_BASE_URL: str = "http://localhost:3000"

    # Logging
    LOG_LEVEL: str = "INFO"
    JSON_LOGS: bool = False

    # Verification codes
    VERIFICATION_CODE_TTL_MINUTES: int = 10
    VERIFICATION_CODE_RETENTION_DAYS: int = 7
    INSTANT_ACCESS_TTL_DAYS: int = 7

    # Customer sessions
    SESSION_DURATION_DAYS: int = 30
    SESSION_COOKIE_NAME: str = "customer_session"
    SESSION_COOKIE_SAMESITE: str = "strict"
    # Set on a redirect reached from an email link, so it must survive a cross-site navigation
    INSTANT_ACCESS_COOKIE_SAMESITE: str = "lax"

    @property
    def SESSION_COOKIE_SECURE(self) -> bool:
        return self.ENVIRONMENT == "production"

    # Rate limiting (per store + email)
    RATE_LIMIT_BACKEND: str = "memory"  # "memory" or "redis"
    RATE_LIMIT_WINDOW_MINUTES: int = 15
    RATE_LIMIT_BLOCK_MINUTES: int = 30
    RATE_LIMIT_CLEANUP_INTERVAL_MINUTES: int = 5
    SEND_CODE_MAX_ATTEMPTS: int = 3
    VERIFY_CODE_MAX_ATTEMPTS: int = 5

    # CORS Settings - can be set as JSON string in .env
    BACKEND_CORS_ORIGINS: Union[List[str], str] = ["http://localhost:3000", "http://localhost:8000"]

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Union[List[str], str]) -> List[str]:
        """Parse CORS origins from JSON string or list"""
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                # If not valid JSON, split by comma
                return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("RATE_LIMIT_BACKEND")
    @classmethod
    def validate_rate_limit_backend(cls, v: str) -> str:
        if v not in ("memory", "redis"):
            raise ValueError("RATE_LIMIT_BACKEND must be 'memory' or 'redis'")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
