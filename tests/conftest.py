import os

# Must be set before app modules build their settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JOB_BACKEND", "inline")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("GEMINI_API_KEY", "test-key")

import pytest
from unittest.mock import AsyncMock, Mock
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core import database
from app.core.config import settings
from app.models import Business, GhlIntegration
from app.schemas.generate import GenerateImageRequest
from app.services.gemini_image import GeneratedImage
from app.services.job_store import JobRepository
from app.services.references import ReferenceBundle, ReferenceLoader
from app.workers.pipeline import ImageGenerationWorker

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    database.Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine, monkeypatch):
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    monkeypatch.setattr(database, "SessionLocal", factory)
    return factory


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def inline_jobs(monkeypatch):
    """No Redis in tests; debug bypass off unless a test turns it on."""
    monkeypatch.setattr(settings, "JOB_BACKEND", "inline")
    monkeypatch.setattr(settings, "DEBUG_PROMPTS_ENABLED", False)
    monkeypatch.setattr(settings, "ENVIRONMENT", "development")
    monkeypatch.setattr(settings, "LOGO_FETCH_RETRY_DELAY", 0)


@pytest.fixture
def business(db):
    row = Business(
        id="biz_acme",
        name="Acme Coffee",
        type="retail",
        industry="Coffee Shop",
        colors={"primary": "#3B2F2F", "secondary": "#F5E6CC", "accent": "#D4A373"},
        voice={"tone": "Warm and witty", "keywords": ["fresh", "local"], "slogan": "Brewed for you"},
        profile={"contactPhone": "555-0100", "address": "1 Main St"},
        ad_preferences={"targetAudience": "Commuters", "complianceText": "While supplies last."},
        logo_url=None,
    )
    db.add(row)
    db.commit()
    return row


@pytest.fixture
def make_job(db, business):
    """Create a job row the way the API does."""
    def _make(prompt="A latte on a wooden table", **fields):
        request = GenerateImageRequest(business_id=business.id, prompt=prompt, **fields)
        return JobRepository(db).create(request)
    return _make


@pytest.fixture
def fake_gemini():
    gemini = Mock()
    gemini.generate = AsyncMock(return_value=GeneratedImage(data=PNG_BYTES, mime_type="image/png"))
    gemini.generate_text = AsyncMock(return_value="Fresh coffee, every morning. #coffee")
    return gemini


@pytest.fixture
def fake_storage():
    storage = Mock()
    storage.upload_bytes = AsyncMock(return_value="https://cdn.example.com/biz_acme/generated/1_abc.png")
    return storage


@pytest.fixture
def fake_references():
    references = Mock(spec=ReferenceLoader)
    references.load = AsyncMock(return_value=ReferenceBundle())
    return references


@pytest.fixture
def worker(fake_gemini, fake_storage, fake_references, session_factory):
    return ImageGenerationWorker(
        gemini=fake_gemini,
        storage=fake_storage,
        references=fake_references,
        session_factory=session_factory,
    )


@pytest.fixture
def fake_ghl():
    ghl = Mock()
    ghl.create_post = AsyncMock(return_value={"post_id": "ghl_post_1", "status": "scheduled"})
    return ghl


@pytest.fixture
def ghl_integration(db, business):
    row = GhlIntegration(
        location_id="loc_1",
        business_id=business.id,
        access_token="token-123",
        user_id="user_9",
    )
    db.add(row)
    db.commit()
    return row


@pytest.fixture
def client(session_factory, worker, fake_gemini, fake_ghl):
    from app.main import app
    from app.api.deps import get_generation_worker, get_gemini_service, get_ghl_client

    app.dependency_overrides[get_generation_worker] = lambda: worker
    app.dependency_overrides[get_gemini_service] = lambda: fake_gemini
    app.dependency_overrides[get_ghl_client] = lambda: fake_ghl
    yield TestClient(app)
    app.dependency_overrides.clear()
