"""
Job Schemas
Job lifecycle enums, the tagged job state, and status API responses.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Dict, Any, List, Union
from enum import Enum

from app.schemas.base import CamelModel


class JobStatus(str, Enum):
    """Job status enum (persisted in generation_jobs.status)."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class JobStage(str, Enum):
    """Pipeline stage of a processing job."""
    QUEUED = "queued"
    BUILDING_PROMPT = "building_prompt"
    FETCHING_REFERENCES = "fetching_references"
    CALLING_MODEL = "calling_model"
    UPLOADING_RESULT = "uploading_result"

    @property
    def message(self) -> str:
        return STAGE_MESSAGES[self]


STAGE_MESSAGES = {
    JobStage.QUEUED: "Queued for generation...",
    JobStage.BUILDING_PROMPT: "Building prompt...",
    JobStage.FETCHING_REFERENCES: "Loading reference images...",
    JobStage.CALLING_MODEL: "Generating image...",
    JobStage.UPLOADING_RESULT: "Saving image...",
}

ACTIVE_STATUSES = (JobStatus.PENDING.value, JobStatus.PROCESSING.value)


# Tagged job state: Pending | Processing(stage) | Completed(asset_id) | Failed(reason)

@dataclass(frozen=True)
class Pending:
    status = JobStatus.PENDING


@dataclass(frozen=True)
class Processing:
    stage: JobStage
    status = JobStatus.PROCESSING


@dataclass(frozen=True)
class Completed:
    asset_id: str
    status = JobStatus.COMPLETED


@dataclass(frozen=True)
class Failed:
    reason: str
    status = JobStatus.FAILED


JobState = Union[Pending, Processing, Completed, Failed]


class AssetSummary(CamelModel):
    """Asset joined onto a completed job's status."""
    id: str
    type: str
    content: str
    prompt: Optional[str] = None
    created_at: Optional[datetime] = None
    style_preset: Optional[str] = None
    aspect_ratio: Optional[str] = None


class JobStatusResponse(CamelModel):
    """Response for GET /status/{job_id}."""
    id: str
    status: str
    stage: Optional[str] = None
    progress_message: Optional[str] = None
    error_message: Optional[str] = None
    result_asset_id: Optional[str] = None
    asset: Optional[AssetSummary] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class JobRecord(CamelModel):
    """Full job row, as returned by the pending-jobs listing."""
    id: str
    business_id: str
    status: str
    stage: Optional[str] = None
    progress_message: Optional[str] = None
    error_message: Optional[str] = None
    prompt: str
    aspect_ratio: Optional[str] = None
    style_id: Optional[str] = None
    subject_id: Optional[str] = None
    model_tier: Optional[str] = None
    strategy: Optional[Dict[str, Any]] = None
    result_asset_id: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class PendingJobsResponse(CamelModel):
    jobs: List[JobRecord] = []


class DeleteJobResponse(CamelModel):
    success: bool = True
