from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./lexis.db"

    # Backend
    BACKEND_HOST: str = "0.0.0.0"
    BACKEND_PORT: int = 8000
    APP_DEBUG: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False  # True for production (structured JSON), False for dev (colored)
    LOG_SQL: bool = False   # Enable SQLAlchemy query logging
    SLOW_REQUEST_MS: float = 2000.0

    # Frontend origins allowed by CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    # Content oracle (distractors, free-text scoring)
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    ORACLE_TIMEOUT_SECONDS: float = 20.0
    ORACLE_MAX_ATTEMPTS: int = 3
    ORACLE_RETRY_BASE_DELAY: float = 1.0
    ORACLE_RETRY_MAX_DELAY: float = 30.0

    # Exercises
    EXERCISE_DEFAULT_LIMIT: int = 5
    EXERCISE_MAX_LIMIT: int = 20

    # Gamification
    CHECK_IN_XP: int = 10
    CHECK_IN_REWARD: int = 1

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
