"""
Generation API Routes
Accepts image generation requests, dispatches them to the worker, and
exposes job status for polling.
"""

import logging
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_generation_worker
from app.core.config import settings
from app.models.business import Business
from app.schemas.generate import GenerateImageRequest, GenerateImageResponse
from app.schemas.job import (
    JobStatus, AssetSummary, JobStatusResponse, JobRecord, PendingJobsResponse, DeleteJobResponse
)
from app.services.job_store import JobRepository
from app.workers.pipeline import ImageGenerationWorker
from app.workers.queue import enqueue_generation

logger = logging.getLogger(__name__)

router = APIRouter()


def dispatch_generation(
    job_id: str,
    business_id: str,
    background_tasks: BackgroundTasks,
    worker: ImageGenerationWorker,
):
    """Hand a job to RQ, or to BackgroundTasks when running inline."""
    if settings.JOB_BACKEND == "inline":
        background_tasks.add_task(worker.execute, job_id)
        logger.info(f"[Generate] Job {job_id} scheduled inline")
    else:
        enqueue_generation(job_id, business_id)


@router.post("", response_model=GenerateImageResponse)
async def generate_image(
    request: GenerateImageRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    worker: ImageGenerationWorker = Depends(get_generation_worker),
):
    """
    Create an image generation job.
    Responds immediately; the image is produced in the background.
    """
    if not request.business_id or not request.prompt or not request.prompt.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields: businessId, prompt"
        )

    business = db.query(Business).filter(Business.id == request.business_id).first()
    if not business:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Business not found"
        )

    repo = JobRepository(db)
    try:
        job = repo.create(request)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[Generate] Job creation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create job"
        )

    logger.info(f"[Generate] Job created: {job.id} (business {business.id})")

    try:
        dispatch_generation(job.id, business.id, background_tasks, worker)
    except Exception as e:
        logger.exception(f"[Generate] Could not dispatch job {job.id}")
        repo.fail(job.id, f"Failed to queue job: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to queue job"
        )

    return GenerateImageResponse(job_id=job.id, status=JobStatus.PROCESSING.value)


@router.get("/status/{job_id}", response_model=JobStatusResponse)
async def get_job_status(
    job_id: str,
    db: Session = Depends(get_db),
):
    """Get a job's status; the asset is included once the job completed."""
    repo = JobRepository(db)
    job = repo.get(job_id)
    if not job:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job not found"
        )

    asset = None
    if job.status == JobStatus.COMPLETED.value and job.result_asset_id:
        row = repo.get_asset(job.result_asset_id)
        if row:
            asset = AssetSummary.model_validate(row)

    return JobStatusResponse(
        id=job.id,
        status=job.status,
        stage=job.stage,
        progress_message=job.progress_message,
        error_message=job.error_message,
        result_asset_id=job.result_asset_id,
        asset=asset,
        created_at=job.created_at,
        updated_at=job.updated_at,
    )


@router.get("/pending/{business_id}", response_model=PendingJobsResponse)
async def list_pending_jobs(
    business_id: str,
    db: Session = Depends(get_db),
):
    """List pending and processing jobs for a business, newest first."""
    jobs = JobRepository(db).list_active(business_id)
    return PendingJobsResponse(jobs=[JobRecord.model_validate(job) for job in jobs])


@router.delete("/job/{job_id}", response_model=DeleteJobResponse)
async def delete_job(
    job_id: str,
    db: Session = Depends(get_db),
):
    """
    Delete a job whatever its status.
    Work already running for it is not interrupted; its later writes find no row.
    """
    try:
        removed = JobRepository(db).delete(job_id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[Generate] Failed to delete job {job_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to kill job"
        )

    logger.info(f"[Generate] Job {job_id} deleted ({removed} row(s))")
    return DeleteJobResponse(success=True)
