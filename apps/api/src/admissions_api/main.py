"""
Admissions API - Main Application Entry Point

This module initializes and configures the FastAPI application including:
- Logging
- Database and Redis connections
- CORS middleware
- API routing
- Health check endpoints
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from admissions_api.api import api_router
from admissions_api.core.config import settings
from admissions_api.core.database import async_session_maker, close_db, init_db
from admissions_api.core.redis import close_redis, get_redis_client, init_redis

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events including:
    - Logging configuration
    - Redis connection
    - Database connection
    """
    configure_logging()
    logger.info(f"Starting {settings.app_name} in {settings.python_env} mode...")

    # Initialize Redis
    try:
        await init_redis()
        logger.info("[OK] Redis connected")
    except (RedisError, OSError) as e:
        logger.error(f"[FAIL] Redis connection failed: {e}")
        if settings.is_production:
            raise

    # Initialize Database
    try:
        await init_db()
        logger.info("[OK] Database connected")
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"[FAIL] Database connection failed: {e}")
        if settings.is_production:
            raise

    yield  # Application runs here

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")

    await close_redis()
    await close_db()
    logger.info("[OK] Cleanup complete")


app = FastAPI(
    title=settings.app_name,
    description="School admission intake, review and application tracking API",
    version="0.1.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api/v1")

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint - API welcome message."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "status": "running",
        "environment": settings.python_env,
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint for container orchestration."""
    return {"status": "healthy"}


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict[str, str]:
    """Readiness check: database and Redis reachable."""
    checks = {"status": "ready", "database": "connected", "redis": "not initialized"}

    try:
        async with async_session_maker() as session:
            await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.warning(f"Readiness check: database unavailable: {e}")
        checks["status"] = "degraded"
        checks["database"] = "error"

    client = get_redis_client()
    if client is not None:
        try:
            await client.ping()
            checks["redis"] = "connected"
        except RedisError as e:
            logger.warning(f"Readiness check: Redis unavailable: {e}")
            checks["redis"] = "error"

    return checks
