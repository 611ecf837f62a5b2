"""
Image Generation Pipeline
Runs one generation job end to end: prompt -> references -> model -> storage
-> asset -> completed. Any exception marks the job failed; nothing is retried.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from app.core import database
from app.core.config import settings
from app.models.business import Business
from app.models.job import GenerationJob
from app.schemas.business import BrandProfile
from app.schemas.generate import SubjectContext, StylePreset, GenerationStrategy
from app.schemas.job import JobStage
from app.services import prompts
from app.services.gemini_image import build_content_parts
from app.services.job_store import JobRepository
from app.services.references import ReferenceLoader, ReferenceBundle
from app.services.storage import generated_image_path
from app.workers.base import BaseWorker, InvalidJobError

logger = logging.getLogger(__name__)

DEBUG_PREFIX = "debug:"


def is_debug_prompt(prompt: str) -> bool:
    """debug: prompts bypass the model, only where the bypass is enabled."""
    return settings.debug_prompts_active and prompt.lower().startswith(DEBUG_PREFIX)


class ImageGenerationWorker(BaseWorker):
    """Worker for image generation jobs."""

    TASK_NAME = "image_generation"

    def __init__(self, gemini=None, storage=None, references: Optional[ReferenceLoader] = None, session_factory=None):
        super().__init__()
        self._gemini = gemini
        self._storage = storage
        self.references = references or ReferenceLoader()
        self.session_factory = session_factory or database.SessionLocal
        self.last_prompt: Optional[str] = None
        self.last_bundle: Optional[ReferenceBundle] = None

    @property
    def gemini(self):
        if self._gemini is None:
            from app.services.gemini_image import GeminiImageService
            self._gemini = GeminiImageService()
        return self._gemini

    @property
    def storage(self):
        if self._storage is None:
            from app.services.storage import get_storage_service
            self._storage = get_storage_service()
        return self._storage

    def _stage(self, repo: JobRepository, job_id: str, stage: JobStage):
        logger.info(f"[Generate] Job {job_id}: {stage.value}")
        repo.set_stage(job_id, stage)
        self._update_progress(stage.value, stage.message)

    async def execute(self, job_id: str) -> Dict[str, Any]:
        """
        Run a job.

        Returns:
            {"job_id", "status", "asset_id"?, "error"?}
        """
        self._log_start(job_id=job_id)
        db = self.session_factory()
        repo = JobRepository(db)
        try:
            asset_id = await self._run(repo, job_id)
        except Exception as e:
            self._log_error(e)
            db.rollback()
            repo.fail(job_id, str(e))
            return {"job_id": job_id, "status": "failed", "error": str(e)}
        finally:
            db.close()

        self._log_complete(f"Job {job_id} -> {asset_id}")
        return {"job_id": job_id, "status": "completed", "asset_id": asset_id}

    async def _run(self, repo: JobRepository, job_id: str) -> str:
        job = repo.get(job_id)
        if not job:
            raise InvalidJobError(f"Job not found: {job_id}")
        # Detached snapshot: stage commits must not reload a row that may be deleted meanwhile
        repo.db.expunge(job)

        business = repo.db.query(Business).filter(Business.id == job.business_id).first()
        if not business:
            raise InvalidJobError(f"Business not found: {job.business_id}")
        brand = BrandProfile.from_business(business)

        options = job.options or {}
        subject = SubjectContext.model_validate(options["subjectContext"]) if options.get("subjectContext") else None
        preset = StylePreset.model_validate(options["stylePreset"]) if options.get("stylePreset") else None
        strategy = GenerationStrategy.model_validate(job.strategy) if job.strategy else None

        # Step 1: prompt
        self._stage(repo, job_id, JobStage.BUILDING_PROMPT)
        if options.get("freedomMode"):
            prompt = prompts.build_freedom_prompt(brand, job.prompt, job.aspect_ratio)
        else:
            context = prompts.PromptContext(
                aspect_ratio=job.aspect_ratio,
                subject=subject,
                style_preset=preset,
                strategy=strategy,
            )
            prompt = prompts.build_image_prompt(
                brand,
                prompts.build_visual_prompt(job.prompt, subject),
                context,
                template=prompts.load_image_template(repo.db),
            )
        self.last_prompt = prompt

        if is_debug_prompt(job.prompt):
            return await self._run_debug(repo, job, prompt, preset)

        # Step 2: references
        self._stage(repo, job_id, JobStage.FETCHING_REFERENCES)
        bundle = await self.references.load(subject=subject, logo_url=brand.logo_url, style_preset=preset)
        self.last_bundle = bundle
        for skipped in bundle.skipped:
            logger.warning(f"[Generate] Job {job_id}: {skipped.kind} reference skipped ({skipped.reason})")

        # Step 3: model
        self._stage(repo, job_id, JobStage.CALLING_MODEL)
        image = await self.gemini.generate(
            build_content_parts(prompt, bundle),
            aspect_ratio=job.aspect_ratio,
            model_tier=job.model_tier,
        )

        # Step 4: storage + asset
        self._stage(repo, job_id, JobStage.UPLOADING_RESULT)
        url = await self.storage.upload_bytes(image.data, generated_image_path(job.business_id), image.mime_type)
        asset = repo.create_asset(job, url, style_preset=preset.name if preset else None)

        repo.complete(job_id, asset.id)
        logger.info(f"[Generate] Job {job_id} completed with asset {asset.id}")
        return asset.id

    async def _run_debug(self, repo: JobRepository, job: GenerationJob, prompt: str, preset: Optional[StylePreset]) -> str:
        """Skip references and the model; complete with a placeholder asset."""
        logger.info(f"[Generate] DEBUG MODE for job {job.id}. Full prompt:\n{prompt}")
        if "slow" in job.prompt.lower():
            logger.info(f"[Generate] DEBUG: slow mode, waiting {settings.DEBUG_SLOW_DELAY:g}s")
            await asyncio.sleep(settings.DEBUG_SLOW_DELAY)

        asset = repo.create_asset(job, settings.DEBUG_PLACEHOLDER_URL, style_preset=preset.name if preset else None)
        repo.complete(job.id, asset.id)
        logger.info(f"[Generate] DEBUG: job {job.id} completed")
        return asset.id


async def run_generation(job_id: str, **kwargs) -> Dict[str, Any]:
    """Run a job in the current event loop (inline backend)."""
    return await ImageGenerationWorker(**kwargs).execute(job_id)
