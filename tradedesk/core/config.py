# File: tradedesk/core/config.py
"""
Configuration settings for TradeDesk.

This module defines application settings using Pydantic's BaseSettings,
which supports environment variable loading and validation.
"""

import json
import secrets
from typing import Annotated, Any, List, Optional, Union

from pydantic import AnyHttpUrl, Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Values can also be provided through a `.env` file in the working directory.
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # API settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "TradeDesk"

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # Security (tokens are issued by the identity layer, only verified here)
    SECRET_KEY: str = secrets.token_urlsafe(32)
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 8

    # CORS
    BACKEND_CORS_ORIGINS: Annotated[List[Union[AnyHttpUrl, str]], NoDecode] = []

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse CORS origins from a JSON list or a comma-separated string."""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return parsed
            except json.JSONDecodeError:
                return [i.strip() for i in v.split(",") if i.strip()]
        return v or []

    # Database
    DATABASE_PATH: str = "tradedesk.db"
    DATABASE_URL: Optional[str] = Field(default=None, validate_default=True)
    # Upper bound for a single store call (busy timeout / statement timeout)
    DB_TIMEOUT_SECONDS: int = 10

    @field_validator("DATABASE_URL", mode="after")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str], info: ValidationInfo) -> Any:
        """Fall back to a SQLite file when no URL is configured."""
        if v:
            return v
        return f"sqlite:///{info.data.get('DATABASE_PATH', 'tradedesk.db')}"

    # Stock ledger
    LEDGER_MAX_RETRIES: int = 3
    DEFAULT_REORDER_POINT: float = 5.0
    DEFAULT_UNIT: str = "each"
    STOCK_HISTORY_LIMIT: int = 50

    @field_validator("LEDGER_MAX_RETRIES")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        """At least one attempt is always made."""
        return max(1, v)

    # Logging
    LOG_LEVEL: str = "INFO"

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        return v.upper() if v.upper() in valid_levels else "INFO"


# Create settings instance
settings = Settings()
