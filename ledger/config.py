# ledger/config.py

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Print Shop Ledger"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///db.sqlite"  # file in project root
    SQL_ECHO: bool = False

    # Seconds of quiet before a burst of ledger changes triggers one refresh
    REFRESH_DEBOUNCE_SECONDS: float = 1.0

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
