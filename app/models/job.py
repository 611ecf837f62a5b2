"""
Generation Job Model
One row per image generation request. The row is the queue record: it is
written only by the worker running the job and read by the status poller.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, JSON

from app.core.database import Base
from app.schemas.job import (
    JobStatus, JobStage, Pending, Processing, Completed, Failed, JobState
)


def new_job_id() -> str:
    return str(uuid.uuid4())


class GenerationJob(Base):
    """Image generation job."""

    __tablename__ = "generation_jobs"

    id = Column(String, primary_key=True, default=new_job_id)
    business_id = Column(String, ForeignKey("businesses.id"), nullable=False, index=True)

    # Status: pending, processing, completed, failed
    status = Column(String, default=JobStatus.PENDING.value, index=True)
    stage = Column(String, nullable=True)
    progress_message = Column(Text, nullable=True)  # transient, cleared on terminal states
    error_message = Column(Text, nullable=True)  # set only when failed

    # Request
    prompt = Column(Text, nullable=False)
    aspect_ratio = Column(String, default="1:1")
    style_id = Column(String, nullable=True)
    subject_id = Column(String, nullable=True)
    model_tier = Column(String, default="pro")
    strategy = Column(JSON, nullable=True)
    options = Column(JSON, default={})  # subjectContext, stylePreset, freedomMode

    # Result
    result_asset_id = Column(String, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def state(self) -> JobState:
        """Tagged view of the row's status columns."""
        if self.status == JobStatus.COMPLETED.value:
            return Completed(asset_id=self.result_asset_id)
        if self.status == JobStatus.FAILED.value:
            return Failed(reason=self.error_message or "Unknown error")
        if self.status == JobStatus.PROCESSING.value:
            return Processing(stage=JobStage(self.stage) if self.stage else JobStage.QUEUED)
        return Pending()

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.COMPLETED.value, JobStatus.FAILED.value)
