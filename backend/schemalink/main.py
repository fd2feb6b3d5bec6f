"""SchemaLink API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map SchemaLinkError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup and disposed on shutdown via lifespan

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Error handlers live in api/error_handlers.py to keep this module's imports small
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from schemalink.infrastructure import database
from schemalink.infrastructure.observability import setup_logging
from schemalink.config import get_settings
from schemalink.api.error_handlers import register_error_handlers
from schemalink.api.routes import dependencies, health, impact, logical_fks

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    database.init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info("SchemaLink API started")
    yield
    if database.db_manager is not None:
        await database.db_manager.dispose()
    logger.info("SchemaLink API shutting down")


app = FastAPI(
    title="SchemaLink API", version="1.0.0", lifespan=lifespan,
)

# CORS — configured from settings, not hardcoded
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes — explicit registration
app.include_router(health.router)
app.include_router(logical_fks.router)
app.include_router(impact.router)
app.include_router(dependencies.router)

register_error_handlers(app)
