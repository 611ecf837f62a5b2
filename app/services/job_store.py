"""
Job Store
Reads and writes generation_jobs rows and the assets they produce.

Every job row has a single writer: the worker running it. Updates are keyed
by job id and touch no row when the job has been deleted in the meantime.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.asset import Asset, new_asset_id
from app.models.job import GenerationJob
from app.schemas.generate import GenerateImageRequest
from app.schemas.job import JobStatus, JobStage, ACTIVE_STATUSES

logger = logging.getLogger(__name__)


class JobRepository:
    """Persistence for generation jobs."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, request: GenerateImageRequest) -> GenerationJob:
        """Insert a job in processing/queued state."""
        options = {
            "subjectContext": request.subject_context.model_dump(by_alias=True) if request.subject_context else None,
            "stylePreset": request.style_preset.model_dump(by_alias=True) if request.style_preset else None,
            "freedomMode": request.freedom_mode,
        }
        job = GenerationJob(
            business_id=request.business_id,
            status=JobStatus.PROCESSING.value,
            stage=JobStage.QUEUED.value,
            progress_message=JobStage.QUEUED.message,
            prompt=request.prompt,
            aspect_ratio=request.aspect_ratio,
            style_id=request.style_id,
            subject_id=request.subject_id,
            model_tier=request.model_tier,
            strategy=request.strategy.model_dump(by_alias=True) if request.strategy else None,
            options=options,
        )
        self.db.add(job)
        self.db.commit()
        self.db.refresh(job)
        return job

    def get(self, job_id: str) -> Optional[GenerationJob]:
        return self.db.query(GenerationJob).filter(GenerationJob.id == job_id).first()

    def list_active(self, business_id: str) -> List[GenerationJob]:
        """Pending and processing jobs of a business, newest first."""
        return (
            self.db.query(GenerationJob)
            .filter(GenerationJob.business_id == business_id)
            .filter(GenerationJob.status.in_(ACTIVE_STATUSES))
            .order_by(GenerationJob.created_at.desc())
            .all()
        )

    def _update(self, job_id: str, **values) -> bool:
        values["updated_at"] = datetime.utcnow()
        count = (
            self.db.query(GenerationJob)
            .filter(GenerationJob.id == job_id)
            .update(values, synchronize_session=False)
        )
        self.db.commit()
        if count == 0:
            logger.warning(f"[JobStore] Job {job_id} no longer exists, update skipped")
        return count > 0

    def set_stage(self, job_id: str, stage: JobStage) -> bool:
        return self._update(
            job_id,
            status=JobStatus.PROCESSING.value,
            stage=stage.value,
            progress_message=stage.message,
        )

    def complete(self, job_id: str, asset_id: str) -> bool:
        if not asset_id:
            raise ValueError("A completed job needs a result asset id")
        return self._update(
            job_id,
            status=JobStatus.COMPLETED.value,
            stage=None,
            progress_message=None,
            error_message=None,
            result_asset_id=asset_id,
        )

    def fail(self, job_id: str, reason: str) -> bool:
        """
        Record a failure. Best effort: if the write itself fails it is logged
        and dropped, and False is returned.
        """
        try:
            return self._update(
                job_id,
                status=JobStatus.FAILED.value,
                progress_message=None,
                error_message=reason or "Unknown error",
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"[JobStore] Could not record failure of job {job_id} ({reason}): {e}")
            return False

    def delete(self, job_id: str) -> int:
        """Delete a job whatever its status. Returns the number of rows removed."""
        count = (
            self.db.query(GenerationJob)
            .filter(GenerationJob.id == job_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return count

    def create_asset(self, job: GenerationJob, content: str, style_preset: Optional[str] = None) -> Asset:
        """Insert the asset produced by a job."""
        asset = Asset(
            id=new_asset_id(),
            business_id=job.business_id,
            type="image",
            content=content,
            prompt=job.prompt,
            aspect_ratio=job.aspect_ratio,
            style_preset=style_preset,
            style_id=job.style_id,
            subject_id=job.subject_id,
            model_tier=job.model_tier,
        )
        self.db.add(asset)
        self.db.commit()
        return asset

    def get_asset(self, asset_id: str) -> Optional[Asset]:
        return self.db.query(Asset).filter(Asset.id == asset_id).first()
