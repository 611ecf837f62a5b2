"""
Brand Studio API
FastAPI Backend Entry Point
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from sqlalchemy import text

from app.core.config import settings
from app.core.database import init_db
from app.core.logging import configure_logging
from app.api import generate, social

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    configure_logging()
    logger.info(f"Starting {settings.APP_NAME} ({settings.ENVIRONMENT}, jobs: {settings.JOB_BACKEND})")
    init_db()
    yield
    from app.core.redis import get_redis_manager
    get_redis_manager().close()
    logger.info(f"Shutting down {settings.APP_NAME}...")


app = FastAPI(
    title=settings.APP_NAME,
    description="Brand-aware marketing image generation, captions and social posting",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(generate.router, prefix="/api/generate-image", tags=["Image Generation"])
app.include_router(social.router, prefix="/api/social", tags=["Social"])


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint for monitoring.
    Returns detailed status of critical services.
    """
    status = {
        "status": "healthy",
        "version": app.version,
        "environment": {
            "name": settings.ENVIRONMENT,
            "job_backend": settings.JOB_BACKEND,
            "database": "sqlite" if settings.DATABASE_URL.startswith("sqlite") else "postgres",
        },
        "services": {}
    }

    # Check database connection
    from app.core import database
    db = database.SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        status["services"]["database"] = "ok"
    except Exception as e:
        status["services"]["database"] = f"error: {str(e)}"
        status["status"] = "degraded"
    finally:
        db.close()

    # Redis is only needed by the rq backend
    if settings.JOB_BACKEND == "rq":
        from app.core.redis import redis_health_check
        redis_status = redis_health_check()
        if redis_status.get("connected"):
            status["services"]["redis"] = "ok"
            status["services"]["redis_version"] = redis_status.get("redis_version")

            from redis.exceptions import RedisError
            from app.workers.queue import get_queue_stats
            try:
                status["queues"] = get_queue_stats()
            except RedisError as e:
                status["queues"] = f"error: {str(e)}"
                status["status"] = "degraded"
        else:
            status["services"]["redis"] = f"error: {redis_status.get('error', 'not connected')}"
            status["status"] = "degraded"

    # Check storage availability
    try:
        from app.services.storage import get_storage_service
        status["services"]["storage"] = f"ok ({get_storage_service().backend})"
    except Exception as e:
        status["services"]["storage"] = f"error: {str(e)}"
        status["status"] = "degraded"

    return status


@app.get("/files/{file_path:path}", tags=["Files"])
async def serve_file(file_path: str):
    """Serve files written by the local storage backend."""
    from app.services.storage import get_storage_service

    path = get_storage_service().local_file(file_path)
    if path is None:
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(path, headers={"Cache-Control": "public, max-age=3600"})


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {
        "message": settings.APP_NAME,
        "docs": "/docs",
        "health": "/health",
    }
