"""
Platform configuration — environment-driven settings for all modules.
"""

from enum import Enum
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Central configuration for TakrawIQ."""

    # ── App ──────────────────────────────────────────────
    APP_NAME: str = "TakrawIQ"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: Environment = Environment.DEVELOPMENT
    DEBUG: bool = True

    # ── API ──────────────────────────────────────────────
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_PREFIX: str = "/api/v1"
    CORS_ORIGINS: list[str] = ["*"]

    # ── Logging ──────────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"

    # ── Sepak Takraw Defaults ────────────────────────────
    SET_POINTS_TO_WIN: int = 15
    SET_DEUCE_AT: int = 14
    SET_HARD_CAP: int = 17
    DEFAULT_TEAM_A_SERVES_FIRST: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
