"""Vetcepi API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map VetcepiError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Encryption key posture resolved at startup: a production process without a
      valid ENCRYPTION_KEY fails in lifespan and never serves a request
    - Database initialized on startup, disposed on shutdown
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vetcepi.api.error_handlers import register_error_handlers
from vetcepi.api.routes import health
from vetcepi.config import get_settings
from vetcepi.infrastructure.database import init_db
from vetcepi.infrastructure.key_management import get_field_cipher
from vetcepi.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    get_field_cipher()
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info(
        "Vetcepi API started", extra={"environment": settings.environment},
    )
    yield
    await manager.dispose()
    logger.info("Vetcepi API shutting down")


app = FastAPI(
    title="Vetcepi API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)

register_error_handlers(app)
