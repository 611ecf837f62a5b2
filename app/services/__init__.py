# Services package - business logic and external integrations
from app.services.gemini_image import GeminiImageService
from app.services.storage import StorageService
from app.services.references import ReferenceLoader
from app.services.job_store import JobRepository
from app.services.ghl import GHLClient

__all__ = [
    "GeminiImageService",
    "StorageService",
    "ReferenceLoader",
    "JobRepository",
    "GHLClient",
]
