"""
Tests for the image generation pipeline.
"""

import re
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from sqlalchemy.exc import OperationalError

from app.core.config import settings
from app.models import Asset, GenerationJob
from app.services.job_store import JobRepository
from app.services.references import ReferenceBundle, ReferenceImage, ReferenceLoader, LOGO_LABEL
from app.workers.base import GenerationTimeoutError, NoImageInResponseError, StorageUploadError
from app.workers.pipeline import ImageGenerationWorker, is_debug_prompt


def reload(db, job_id):
    db.expire_all()
    return db.query(GenerationJob).filter(GenerationJob.id == job_id).first()


class TestSuccessfulGeneration:
    """Prompt -> model -> storage -> asset -> completed"""

    @pytest.mark.asyncio
    async def test_completes_with_asset(self, db, make_job, worker, fake_gemini, fake_storage):
        job = make_job(aspect_ratio="4:5", model_tier="ultra")

        result = await worker.execute(job.id)

        assert result["status"] == "completed"
        row = reload(db, job.id)
        assert row.status == "completed"
        assert row.result_asset_id == result["asset_id"]
        assert row.error_message is None
        assert row.progress_message is None

        asset = db.query(Asset).filter(Asset.id == row.result_asset_id).one()
        assert re.match(r"^asset_\d+_[0-9a-f]+$", asset.id)
        assert asset.content == "https://cdn.example.com/biz_acme/generated/1_abc.png"
        assert asset.type == "image"
        assert asset.prompt == "A latte on a wooden table"
        assert asset.aspect_ratio == "4:5"

        kwargs = fake_gemini.generate.await_args.kwargs
        assert kwargs["aspect_ratio"] == "4:5"
        assert kwargs["model_tier"] == "ultra"
        fake_gemini.generate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_upload_path_and_prompt(self, make_job, worker, fake_storage):
        job = make_job()
        await worker.execute(job.id)

        data, path, content_type = fake_storage.upload_bytes.await_args.args
        assert data.startswith(b"\x89PNG")
        assert re.match(r"^biz_acme/generated/\d+_[0-9a-f]+\.png$", path)
        assert content_type == "image/png"

        assert "JOB TICKET #" in worker.last_prompt
        assert "Acme Coffee" in worker.last_prompt

    @pytest.mark.asyncio
    async def test_references_passed_to_model(self, make_job, worker, fake_gemini, fake_references):
        bundle = ReferenceBundle()
        bundle.add(ReferenceImage(kind="logo", label=LOGO_LABEL, url="https://x/logo.png", data=b"logo"))
        fake_references.load.return_value = bundle

        job = make_job(subject_context={"type": "product", "imageUrl": "https://x/p.png"})
        await worker.execute(job.id)

        subject = fake_references.load.await_args.kwargs["subject"]
        assert subject.image_url == "https://x/p.png"
        parts = fake_gemini.generate.await_args.args[0]
        assert parts[-1].text == f" {LOGO_LABEL} "
        assert worker.last_bundle is bundle

    @pytest.mark.asyncio
    async def test_malformed_subject_url_is_skipped(self, db, make_job, fake_gemini, fake_storage, session_factory):
        worker = ImageGenerationWorker(
            gemini=fake_gemini,
            storage=fake_storage,
            references=ReferenceLoader(http_client=httpx.AsyncClient(
                transport=httpx.MockTransport(lambda request: httpx.Response(404))
            )),
            session_factory=session_factory,
        )
        job = make_job(subject_context={"type": "product", "imageUrl": "https://cdn.example.com/latte.png\n"})

        result = await worker.execute(job.id)

        assert result["status"] == "completed"
        assert [s.kind for s in worker.last_bundle.skipped] == ["subject"]
        assert reload(db, job.id).status == "completed"

    @pytest.mark.asyncio
    async def test_freedom_mode_prompt(self, make_job, worker):
        job = make_job(prompt="Surreal coffee planet", freedom_mode=True)
        await worker.execute(job.id)

        assert "CREATIVE FREEDOM MODE" in worker.last_prompt
        assert "JOB TICKET" not in worker.last_prompt

    @pytest.mark.asyncio
    async def test_stages_recorded_in_order(self, make_job, worker):
        job = make_job()
        stages = []
        original = JobRepository.set_stage

        def spy(repo, job_id, stage):
            stages.append(stage.value)
            return original(repo, job_id, stage)

        with patch.object(JobRepository, "set_stage", spy):
            await worker.execute(job.id)

        assert stages == ["building_prompt", "fetching_references", "calling_model", "uploading_result"]


class TestFailures:
    """Every failure lands on the row; nothing is retried"""

    @pytest.mark.asyncio
    async def test_no_image(self, db, make_job, worker, fake_gemini, fake_storage):
        fake_gemini.generate.side_effect = NoImageInResponseError()
        job = make_job()

        result = await worker.execute(job.id)

        assert result["status"] == "failed"
        row = reload(db, job.id)
        assert row.status == "failed"
        assert row.error_message == "No image in response"
        assert row.result_asset_id is None
        fake_storage.upload_bytes.assert_not_awaited()
        assert db.query(Asset).count() == 0

    @pytest.mark.asyncio
    async def test_timeout_not_retried(self, db, make_job, worker, fake_gemini):
        fake_gemini.generate.side_effect = GenerationTimeoutError(40)
        job = make_job()

        await worker.execute(job.id)

        row = reload(db, job.id)
        assert row.status == "failed"
        assert row.error_message == "Image generation timed out after 40s"
        assert fake_gemini.generate.await_count == 1

    @pytest.mark.asyncio
    async def test_upload_failure(self, db, make_job, worker, fake_storage):
        fake_storage.upload_bytes.side_effect = StorageUploadError("Failed to upload to storage: bucket missing")
        job = make_job()

        await worker.execute(job.id)

        row = reload(db, job.id)
        assert row.status == "failed"
        assert row.error_message == "Failed to upload to storage: bucket missing"
        assert db.query(Asset).count() == 0

    @pytest.mark.asyncio
    async def test_missing_business(self, db, make_job, worker, business):
        job = make_job()
        db.delete(business)
        db.commit()

        await worker.execute(job.id)

        row = reload(db, job.id)
        assert row.status == "failed"
        assert row.error_message == "Business not found: biz_acme"

    @pytest.mark.asyncio
    async def test_failure_write_error_is_dropped(self, make_job, worker, fake_gemini, caplog):
        fake_gemini.generate.side_effect = RuntimeError("model exploded")
        job = make_job()

        with patch.object(JobRepository, "_update", side_effect=[True, True, True,
                                                                  OperationalError("UPDATE", {}, Exception("db down"))]):
            result = await worker.execute(job.id)

        assert result["status"] == "failed"
        assert "Could not record failure" in caplog.text
        assert "model exploded" in caplog.text

    @pytest.mark.asyncio
    async def test_deleted_job_is_noop(self, db, make_job, worker, fake_gemini):
        job = make_job()
        job_id = job.id

        async def delete_then_answer(*args, **kwargs):
            JobRepository(db).delete(job_id)
            return fake_gemini.generate.return_value

        fake_gemini.generate.side_effect = delete_then_answer

        result = await worker.execute(job_id)

        assert result["status"] == "completed"
        assert reload(db, job_id) is None


class TestDebugBypass:
    """debug: prompts skip the model when enabled"""

    @pytest.mark.asyncio
    async def test_debug_prompt_completes_with_placeholder(self, db, make_job, worker, fake_gemini,
                                                           fake_references, fake_storage, monkeypatch):
        monkeypatch.setattr(settings, "DEBUG_PROMPTS_ENABLED", True)
        job = make_job(prompt="DEBUG: test the layout")

        result = await worker.execute(job.id)

        assert result["status"] == "completed"
        row = reload(db, job.id)
        asset = db.query(Asset).filter(Asset.id == row.result_asset_id).one()
        assert asset.content == settings.DEBUG_PLACEHOLDER_URL
        fake_gemini.generate.assert_not_awaited()
        fake_references.load.assert_not_awaited()
        fake_storage.upload_bytes.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_slow_debug_waits(self, make_job, worker, monkeypatch):
        monkeypatch.setattr(settings, "DEBUG_PROMPTS_ENABLED", True)
        monkeypatch.setattr(settings, "DEBUG_SLOW_DELAY", 0.25)
        job = make_job(prompt="debug: slow please")

        with patch("app.workers.pipeline.asyncio.sleep", new=AsyncMock()) as sleep:
            await worker.execute(job.id)

        sleep.assert_awaited_once_with(0.25)

    @pytest.mark.asyncio
    async def test_prefix_inert_when_disabled(self, make_job, worker, fake_gemini):
        job = make_job(prompt="debug: this is a real prompt")
        await worker.execute(job.id)
        fake_gemini.generate.assert_awaited_once()

    def test_prefix_inert_in_production(self, monkeypatch):
        monkeypatch.setattr(settings, "DEBUG_PROMPTS_ENABLED", True)
        assert is_debug_prompt("debug: x")
        monkeypatch.setattr(settings, "ENVIRONMENT", "production")
        assert not is_debug_prompt("debug: x")

    def test_prefix_must_lead(self, monkeypatch):
        monkeypatch.setattr(settings, "DEBUG_PROMPTS_ENABLED", True)
        assert not is_debug_prompt("please debug: x")
