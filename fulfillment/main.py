"""Campo Vida Fulfillment API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map FulfillmentError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup via lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Error handlers live in api/error_handlers.py to keep this module's imports small
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import fulfillment.infrastructure.database as db_module
from fulfillment import __version__
from fulfillment.infrastructure.database import init_db
from fulfillment.infrastructure.observability import setup_logging
from fulfillment.config import get_settings
from fulfillment.api.error_handlers import register_error_handlers
from fulfillment.api.routes import admin, auth, driver, health, orders, payments

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info("Campo Vida fulfillment API started")
    yield
    if db_module.db_manager:
        await db_module.db_manager.close()
    logger.info("Campo Vida fulfillment API shutting down")


app = FastAPI(
    title="Campo Vida Fulfillment API", version=__version__, lifespan=lifespan,
)

# CORS from settings
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(orders.router)
app.include_router(driver.router)
app.include_router(admin.router)
app.include_router(payments.router)

register_error_handlers(app)
