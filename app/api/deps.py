"""
API Dependencies
Common dependencies for FastAPI routes (database sessions, services).
"""

from typing import Generator
from app.core import database


def get_db() -> Generator:
    """Get database session."""
    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_generation_worker():
    """Worker used by the inline job backend."""
    from app.workers.pipeline import ImageGenerationWorker
    return ImageGenerationWorker()


def get_gemini_service():
    from app.services.gemini_image import GeminiImageService
    return GeminiImageService()


def get_ghl_client():
    from app.services.ghl import GHLClient
    return GHLClient()
