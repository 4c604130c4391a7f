from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Postgres
    DATABASE_URL: str = "postgresql://localhost:5432/pipeline"

    # Redis (task queue)
    REDIS_URL: str = "redis://localhost:6379/0"
    TASK_QUEUE_NAME: str = "pipeline:tasks"
    TASK_QUEUE_BLOCK_TIMEOUT_SECONDS: int = 5

    # Google Calendar
    GOOGLE_CALENDAR_ID: str = "primary"
    CALENDAR_PROVIDER: str = "google"

    # =================================================================
    # CALENDAR SYNC SETTINGS
    # =================================================================
    SYNC_WINDOW_PAST_DAYS: int = 90
    SYNC_WINDOW_FUTURE_DAYS: int = 90
    SYNC_PAGE_SIZE: int = 50
    SYNC_MAX_PAGES: int = 10
    SYNC_INTERVAL_MINUTES: int = 15
    STALE_EVENT_GRACE_SECONDS: int = 60

    # OpenAI (insight extraction collaborator)
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_MAX_TOKENS: int = 4000
    OPENAI_TEMPERATURE: float = 0.2
    EXTRACTION_TIMEOUT_SECONDS: int = 120
    EXTRACTION_MAX_RETRIES: int = 3

    # Forced failure deadline for an in-flight transcript parse
    PARSING_DEADLINE_SECONDS: int = 300

    # =================================================================
    # DATABASE POOL SETTINGS
    # =================================================================
    DB_POOL_MIN_SIZE: int = 3
    DB_POOL_MAX_SIZE: int = 12
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def get_db_pool_config(self) -> dict:
        """
        Get database pool configuration.
        Adjust environment-specific settings based on self.environment.
        """
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            config.update(
                {
                    "min_size": 2,
                    "max_size": 6,
                    "timeout": 15.0,
                }
            )

        return config


settings = Settings()
