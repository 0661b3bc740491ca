import os
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):

    port: int = 8000
    environment: str = "development"

    postgres_user: str = os.getenv("POSTGRES_USER", "user")
    postgres_password: str = os.getenv("POSTGRES_PASSWORD", "password")
    postgres_db: str = os.getenv("POSTGRES_DB", "examguard_db")
    postgres_host: str = os.getenv("POSTGRES_HOST", "db")
    postgres_port: int = 5432

    # Full URL wins over the postgres_* parts (sqlite for local runs and tests)
    database_url_override: Optional[str] = os.getenv("DATABASE_URL")

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return f"postgresql://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    azure_openai_endpoint: Optional[str] = ""
    azure_openai_api_key: Optional[str] = ""
    azure_openai_deployment: str = "gpt-4o-mini"
    azure_openai_api_version: str = "2024-03-01-preview"

    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    refresh_token_expire_minutes: int = 10080
    admin_registration_code: Optional[str] = None

    cors_origins_str: str = "http://localhost:3000,http://localhost:5173,http://localhost:9002"

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins_str.split(",")]

    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    cache_default_ttl: int = 600
    live_snapshot_ttl: int = 120

    default_timezone: str = "UTC"
    timezone_display_format: str = "%d.%m.%Y, %H:%M:%S"

    # Proctoring
    max_violations: int = 3
    default_exam_duration_seconds: int = 1800
    tick_interval_seconds: float = 1.0
    capture_interval_seconds: float = 1.0
    classifier_timeout_seconds: float = 15.0
    max_frame_size: int = 2 * 1024 * 1024

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
