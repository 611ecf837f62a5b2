"""
Application Configuration
Loads settings from environment variables.
"""

from typing import List
from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    APP_NAME: str = "Brand Studio API"
    ENVIRONMENT: str = "development"  # development | production
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    API_BASE_URL: str = "http://localhost:8000"  # Base URL for file serving
    PUBLIC_APP_URL: str = "http://localhost:5173"  # Resolves relative /artifacts/ references

    # Database - SQLite for local dev, PostgreSQL for production
    DATABASE_URL: str = "sqlite:///./brand_studio.db"

    # Redis / job queue
    REDIS_URL: str = "redis://localhost:6379"
    JOB_BACKEND: str = "rq"  # rq | inline (BackgroundTasks in the API process)
    JOB_TIMEOUT_GENERATION: int = 180

    # Gemini
    GEMINI_API_KEY: str = ""
    GEMINI_IMAGE_MODEL: str = "gemini-3-pro-image-preview"
    GEMINI_TEXT_MODEL: str = "gemini-2.5-flash"
    IMAGE_GENERATION_TIMEOUT: float = 40.0  # Single race against the model call, no retry

    # Reference images
    REFERENCE_FETCH_TIMEOUT: float = 30.0
    MAX_STYLE_REFERENCES: int = 4
    LOGO_FETCH_RETRY_DELAY: float = 0.5

    # Debug bypass ("debug:" prompts skip the model call)
    DEBUG_PROMPTS_ENABLED: bool = False
    DEBUG_PLACEHOLDER_URL: str = "https://placehold.co/1024x1024/png?text=DEBUG+MODE"
    DEBUG_SLOW_DELAY: float = 8.0

    # Storage - priority: Supabase > GCS > Local > S3
    USE_SUPABASE_STORAGE: bool = False
    USE_GCS: bool = False
    USE_LOCAL_STORAGE: bool = True
    STORAGE_BUCKET: str = "business-assets"
    LOCAL_STORAGE_PATH: str = "./uploads"
    GCP_PROJECT_ID: str = ""
    SUPABASE_URL: str = ""
    SUPABASE_SECRET_KEY: str = ""

    # Storage - S3 settings (optional)
    S3_ENDPOINT: str = ""
    S3_ACCESS_KEY: str = ""
    S3_SECRET_KEY: str = ""
    S3_REGION: str = "us-east-1"

    # GoHighLevel social posting
    GHL_API_BASE: str = "https://services.leadconnectorhq.com"
    GHL_API_VERSION: str = "2021-07-28"
    GHL_TIMEOUT: float = 30.0

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    @field_validator('GEMINI_API_KEY', 'SUPABASE_SECRET_KEY', mode='before')
    @classmethod
    def strip_api_keys(cls, v):
        """Strip whitespace and newlines from API keys loaded from secrets."""
        if isinstance(v, str):
            return v.strip()
        return v

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def debug_prompts_active(self) -> bool:
        """The debug: prefix is honoured only outside production."""
        return self.DEBUG_PROMPTS_ENABLED and not self.is_production

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
