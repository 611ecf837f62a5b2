# Pydantic schemas package
from app.schemas.job import (
    JobStatus, JobStage, JobState, Pending, Processing, Completed, Failed,
    AssetSummary, JobStatusResponse, JobRecord, PendingJobsResponse, DeleteJobResponse
)
from app.schemas.generate import (
    SubjectContext, StyleReference, StylePreset, GenerationStrategy,
    GenerateImageRequest, GenerateImageResponse
)
from app.schemas.business import BrandProfile
from app.schemas.social import (
    CaptionRequest, CaptionResponse, SocialPostRequest, SocialPostResponse,
    SocialPostRecord, SocialPostsResponse
)

__all__ = [
    "JobStatus", "JobStage", "JobState", "Pending", "Processing", "Completed", "Failed",
    "AssetSummary", "JobStatusResponse", "JobRecord", "PendingJobsResponse", "DeleteJobResponse",
    "SubjectContext", "StyleReference", "StylePreset", "GenerationStrategy",
    "GenerateImageRequest", "GenerateImageResponse",
    "BrandProfile",
    "CaptionRequest", "CaptionResponse", "SocialPostRequest", "SocialPostResponse",
    "SocialPostRecord", "SocialPostsResponse",
]
