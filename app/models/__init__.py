# Database models package
from app.models.business import Business
from app.models.job import GenerationJob
from app.models.asset import Asset
from app.models.system_prompt import SystemPrompt
from app.models.social import GhlIntegration, SocialPost

__all__ = [
    "Business",
    "GenerationJob",
    "Asset",
    "SystemPrompt",
    "GhlIntegration",
    "SocialPost",
]
