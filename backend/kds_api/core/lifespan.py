"""
Application lifespan handler.
Manages startup and shutdown events for the FastAPI application.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from kds_shared.config.logging import setup_logging, api_logger as logger
from kds_shared.config.settings import settings
from kds_shared.infrastructure.db import engine, SessionLocal
from kds_shared.infrastructure.events import close_redis_pool
from kds_api.models import Base
from kds_api.seed import seed


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()

    secret_errors = settings.validate_production_secrets()
    if secret_errors:
        for error in secret_errors:
            logger.error("Configuration error", error=error)
        if settings.environment == "production":
            raise RuntimeError(
                f"Production configuration errors: {'; '.join(secret_errors)}. "
                "Server will not start with insecure configuration."
            )
        logger.warning("Running with insecure defaults (acceptable for development only)")

    logger.info("Starting KDS API", port=settings.rest_api_port, env=settings.environment)

    if settings.seed_demo_data:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created/verified")
        with SessionLocal() as db:
            seed(db)

    yield

    logger.info("Shutting down KDS API")
    await close_redis_pool()
