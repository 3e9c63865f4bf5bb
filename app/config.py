"""
Application Configuration

Uses Pydantic Settings for environment variable management.
SQLite for development and tests, PostgreSQL in production.
"""
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    APP_NAME: str = "LightBnB"
    DEBUG: bool = Field(default=False, alias="DEBUG")
    LOG_LEVEL: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database
    DATABASE_URL: str = Field(default="sqlite:///./lightbnb.db", alias="DATABASE_URL")
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # Queries
    DEFAULT_RESULT_LIMIT: int = 10
    # cost_per_night is stored in cents, search bounds come in dollars
    PRICE_MINOR_UNITS: int = 100

    # Directory holding users.json / properties.json seed files
    FIXTURES_DIR: Optional[str] = Field(default=None, alias="FIXTURES_DIR")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    @property
    def is_postgres(self) -> bool:
        return self.DATABASE_URL.startswith("postgresql")


settings = Settings()
