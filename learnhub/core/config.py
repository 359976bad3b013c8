from functools import lru_cache
from typing import Literal

from pydantic import Field, PostgresDsn, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "LearnHub API"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production", "test"] = "development"

    # API
    api_v1_prefix: str = "/api/v1"

    # CORS - comma-separated list of origins
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    @computed_field
    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # Database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_db: str = "learnhub"

    # Full database URL from environment variable (e.g. Heroku DATABASE_URL)
    database_url_env: str | None = Field(default=None, alias="DATABASE_URL")

    @computed_field
    @property
    def database_url(self) -> str:
        """Asynchronous database URL."""
        if self.database_url_env:
            url = self.database_url_env
            if url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql+asyncpg://", 1)
            elif url.startswith("postgresql://") and "+asyncpg" not in url:
                url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
            return url

        return str(
            PostgresDsn.build(
                scheme="postgresql+asyncpg",
                username=self.postgres_user,
                password=self.postgres_password,
                host=self.postgres_host,
                port=self.postgres_port,
                path=self.postgres_db,
            )
        )

    @computed_field
    @property
    def database_url_sync(self) -> str:
        """Synchronous database URL."""
        if self.database_url_env:
            url = self.database_url_env
            if url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql://", 1)
            elif "+asyncpg" in url:
                url = url.replace("+asyncpg", "", 1)
            return url

        return str(
            PostgresDsn.build(
                scheme="postgresql",
                username=self.postgres_user,
                password=self.postgres_password,
                host=self.postgres_host,
                port=self.postgres_port,
                path=self.postgres_db,
            )
        )

    db_pool_size: int = 20
    db_max_overflow: int = 10

    # Redis (Celery broker and result backend)
    redis_url: str = "redis://localhost:6379/0"

    # JWT
    jwt_secret_key: str = Field(default="change-me-in-production-use-openssl-rand-hex-32")
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days
    refresh_token_expire_days: int = 30

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_per_minute: int = 100

    # Logging
    log_level: str = "INFO"

    # Pagination
    default_page_size: int = 10
    max_page_size: int = 100

    # AWS (S3 + CloudFront + MediaConvert)
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    aws_region: str = "us-east-1"
    s3_endpoint_url: str | None = None
    s3_bucket_name: str = "learnhub-content"
    cloudfront_domain: str | None = None
    mediaconvert_endpoint_url: str | None = None
    mediaconvert_role_arn: str | None = None
    mediaconvert_queue_arn: str | None = None

    # File upload limits
    max_image_size_mb: int = 5
    max_video_size_mb: int = 2048
    max_document_size_mb: int = 50
    allowed_image_types: str = "image/png,image/jpeg,image/gif,image/webp"
    allowed_video_types: str = "video/mp4,video/quicktime,video/webm,video/x-matroska"
    allowed_document_types: str = "application/pdf"

    @computed_field
    @property
    def allowed_image_types_list(self) -> list[str]:
        return [t.strip() for t in self.allowed_image_types.split(",")]

    @computed_field
    @property
    def allowed_video_types_list(self) -> list[str]:
        return [t.strip() for t in self.allowed_video_types.split(",")]

    @computed_field
    @property
    def allowed_document_types_list(self) -> list[str]:
        return [t.strip() for t in self.allowed_document_types.split(",")]

    # Enrollments
    default_enrollment_days: int = 365

    # Background jobs
    unlock_sweep_interval_minutes: int = 60
    payment_reminder_days_ahead: int = 3


@lru_cache
def get_settings() -> Settings:
    return Settings()
