"""
Application Configuration
"""
from pydantic_settings import BaseSettings
from typing import List
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "Clinic Panel"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Clinic backend (system of record)
    BACKEND_API_URL: str = "http://localhost:8000/api/"
    BACKEND_TIMEOUT_SECONDS: float = 30.0

    # JWT (tokens are issued by the backend with the shared secret)
    SECRET_KEY: str = "your-secret-key-change-this-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]
    ALLOWED_HOSTS: List[str] = ["*"]

    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = 100

    # Analytics
    LOW_STOCK_THRESHOLD: int = 5

    # Visit drafts (in memory)
    MAX_DRAFTS_PER_USER: int = 20
    DRAFT_TTL_MINUTES: int = 120

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
