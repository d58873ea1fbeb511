import os
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):

    port: int = 8000
    environment: str = "development"


    postgres_user: str = os.getenv("POSTGRES_USER", "user")
    postgres_password: str = os.getenv("POSTGRES_PASSWORD", "password")
    postgres_db: str = os.getenv("POSTGRES_DB", "examroom_db")
    postgres_host: str = os.getenv("POSTGRES_HOST", "db")
    postgres_port: int = 5432

    # Overrides the PostgreSQL URL entirely, e.g. sqlite+aiosqlite:///./exam.db
    database_url_override: Optional[str] = None

    @property
    def async_database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"


    cors_origins_str: str = "http://localhost:3000,http://localhost:5173"

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins_str.split(",")]


    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    cache_enabled: bool = True
    cache_default_ttl: int = 600
    question_cache_ttl: int = 300

    slow_request_threshold: float = 1.0

    celery_broker_url: str = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
    celery_result_backend: str = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/0")

    default_timezone: str = "Asia/Almaty"
    timezone_display_format: str = "%d.%m.%Y, %H:%M:%S"

    # Session monitor, seconds
    heartbeat_interval: float = 5.0
    device_check_interval: float = 7.0
    status_check_interval: float = 10.0
    stale_verification_seconds: float = 15.0
    heartbeat_max_failures: int = 3
    redirect_grace_seconds: float = 3.0

    # Exam session state machine, seconds
    timer_tick_seconds: float = 1.0
    fullscreen_check_interval: float = 2.0
    fullscreen_warning_debounce: float = 5.0
    answer_save_throttle: float = 1.0
    max_violations: int = 3
    violation_reset_seconds: float = 30.0

    # Maintenance
    abandoned_session_grace_seconds: int = 300


    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
